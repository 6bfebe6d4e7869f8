"""Tests for historical / recent classification."""
from conftest import TEN_DAYS, run
from voucher_locator.engine.strategy import RangeStrategySelector
from voucher_locator.gateway.memory_gateway import InMemoryLedgerGateway
from voucher_locator.schemas import DateRange, SearchStrategy


def test_range_before_newest_voucher_is_historical(ten_day_ledger, tracker, partition, date_range) -> None:
    selector = RangeStrategySelector(ten_day_ledger, tracker)
    assert run(selector.classify(partition, 10, date_range)) is SearchStrategy.HISTORICAL
    assert tracker.binary_search_queries == 1
    assert ten_day_ledger.fetch_calls == [10]


def test_range_reaching_newest_voucher_is_recent(ten_day_ledger, tracker, partition) -> None:
    selector = RangeStrategySelector(ten_day_ledger, tracker)
    rng = DateRange(date_from="20240108", date_to="20240110")
    assert run(selector.classify(partition, 10, rng)) is SearchStrategy.RECENT


def test_range_after_newest_voucher_is_recent(ten_day_ledger, tracker, partition) -> None:
    selector = RangeStrategySelector(ten_day_ledger, tracker)
    rng = DateRange(date_from="20240201", date_to="20240205")
    assert run(selector.classify(partition, 10, rng)) is SearchStrategy.RECENT


def test_unreadable_newest_voucher_falls_back_to_recent(tracker, partition, date_range) -> None:
    gateway = InMemoryLedgerGateway.from_dates(partition, TEN_DAYS, failing_indices=[10])
    selector = RangeStrategySelector(gateway, tracker)
    assert run(selector.classify(partition, 10, date_range)) is SearchStrategy.RECENT
    assert tracker.binary_search_queries == 1
