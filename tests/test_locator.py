"""Tests for the binary-search span resolution."""
import asyncio

import pytest

from conftest import TEN_DAYS, run
from voucher_locator.engine.locator import MissingProbePolicy, RangeLocator
from voucher_locator.errors import OperationCancelled
from voucher_locator.gateway.memory_gateway import InMemoryLedgerGateway
from voucher_locator.schemas import DateRange, SearchStrategy


def _locate(gateway, tracker, partition, date_from, date_to, strategy, **kwargs):
    locator = RangeLocator(gateway, tracker, **kwargs)
    rng = DateRange(date_from=date_from, date_to=date_to)
    return run(locator.locate(partition, 10, rng, strategy))


def test_historical_search_bounds_both_ends(ten_day_ledger, tracker, partition) -> None:
    span = _locate(ten_day_ledger, tracker, partition, "20240103", "20240105", SearchStrategy.HISTORICAL)
    assert (span.first_index, span.last_index) == (3, 5)
    assert tracker.binary_search_queries == 6


def test_recent_search_runs_to_latest(ten_day_ledger, tracker, partition) -> None:
    span = _locate(ten_day_ledger, tracker, partition, "20240108", "20240131", SearchStrategy.RECENT)
    assert (span.first_index, span.last_index) == (8, 10)


def test_range_after_ledger_is_empty(ten_day_ledger, tracker, partition) -> None:
    span = _locate(ten_day_ledger, tracker, partition, "20240201", "20240205", SearchStrategy.RECENT)
    assert span.is_empty


def test_range_before_ledger_is_empty(ten_day_ledger, tracker, partition) -> None:
    span = _locate(ten_day_ledger, tracker, partition, "20231201", "20231231", SearchStrategy.HISTORICAL)
    assert span.is_empty


def test_search_never_probes_outside_ledger(ten_day_ledger, tracker, partition) -> None:
    _locate(ten_day_ledger, tracker, partition, "20240101", "20240110", SearchStrategy.RECENT)
    assert all(1 <= i <= 10 for i in ten_day_ledger.fetch_calls)


def test_missing_probe_is_stepped_over(tracker, partition) -> None:
    gateway = InMemoryLedgerGateway.from_dates(partition, TEN_DAYS, missing_indices=[4, 5])
    span = _locate(gateway, tracker, partition, "20240103", "20240106", SearchStrategy.HISTORICAL)
    assert (span.first_index, span.last_index) == (3, 6)


def test_missing_probe_can_hide_boundary_when_treated_as_too_early(tracker, partition) -> None:
    gateway = InMemoryLedgerGateway.from_dates(partition, TEN_DAYS, missing_indices=[5])
    span = _locate(gateway, tracker, partition, "20240101", "20240103", SearchStrategy.HISTORICAL)
    assert span.is_empty


def test_too_late_policy_keeps_early_boundary(tracker, partition) -> None:
    gateway = InMemoryLedgerGateway.from_dates(partition, TEN_DAYS, missing_indices=[5])
    span = _locate(
        gateway, tracker, partition, "20240101", "20240103", SearchStrategy.HISTORICAL,
        missing_policy=MissingProbePolicy.TREAT_AS_TOO_LATE,
    )
    assert (span.first_index, span.last_index) == (1, 3)


def test_equal_dates_span_every_duplicate(tracker, partition) -> None:
    dates = ["20240101", "20240102", "20240102", "20240102", "20240103",
             "20240104", "20240105", "20240106", "20240107", "20240108"]
    gateway = InMemoryLedgerGateway.from_dates(partition, dates)
    span = _locate(gateway, tracker, partition, "20240102", "20240102", SearchStrategy.HISTORICAL)
    assert (span.first_index, span.last_index) == (2, 4)


def test_cancelled_search_raises(ten_day_ledger, tracker, partition) -> None:
    event = asyncio.Event()
    event.set()
    with pytest.raises(OperationCancelled):
        _locate(
            ten_day_ledger, tracker, partition, "20240103", "20240105",
            SearchStrategy.HISTORICAL, cancel_event=event,
        )
    assert tracker.binary_search_queries == 0
