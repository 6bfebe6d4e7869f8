"""Tests for filtering, ordering and totals."""
from voucher_locator.engine.aggregator import ResultAggregator
from voucher_locator.engine.tracker import PerformanceTracker
from voucher_locator.schemas import (
    DateRange,
    FetchOutcome,
    ResolvedSpan,
    SearchStrategy,
    VoucherRecord,
)


def _ok(index: int, date: str, amount: float) -> FetchOutcome:
    record = VoucherRecord.from_payload(index, {"CbteFch": date, "ImpTotal": amount, "CAE": "1"})
    return FetchOutcome(index=index, record=record)


def test_aggregate_filters_sorts_and_totals(date_range) -> None:
    outcomes = [
        _ok(6, "20240106", 600),
        _ok(4, "20240104", 0.1),
        _ok(3, "20240103", 0.2),
        _ok(2, "20240102", 200),
        FetchOutcome(index=5, error="timeout"),
    ]
    tracker = PerformanceTracker()
    tracker.merge_batch(len(outcomes))

    result = ResultAggregator().aggregate(
        outcomes, date_range, False, tracker, SearchStrategy.HISTORICAL,
        ResolvedSpan(first_index=2, last_index=6),
    )

    assert [v.voucher_number for v in result.vouchers] == [3, 4]
    assert result.summary.count == 2
    assert result.summary.total_amount == 0.3
    assert result.summary.matched_index_range.first == 3
    assert result.summary.matched_index_range.last == 4
    assert result.failed_indices == [5]
    assert result.resolved_span.first == 2
    assert result.performance.batch_queries == 5


def test_aggregate_drops_duplicate_indices(date_range) -> None:
    outcomes = [_ok(3, "20240103", 10), _ok(3, "20240103", 10)]
    result = ResultAggregator().aggregate(outcomes, date_range, False, PerformanceTracker())
    assert result.summary.count == 1
    assert result.summary.total_amount == 10


def test_aggregate_skips_records_without_date(date_range) -> None:
    outcome = FetchOutcome(index=3, record=VoucherRecord.from_payload(3, {"ImpTotal": 5}))
    result = ResultAggregator().aggregate([outcome], date_range, False, PerformanceTracker())
    assert result.vouchers == []
    assert result.failed_indices == []


def test_empty_result_is_well_formed() -> None:
    rng = DateRange(date_from="20240201", date_to="20240205")
    payload = ResultAggregator().empty_result(rng, PerformanceTracker(), SearchStrategy.RECENT).to_payload()

    assert payload["summary"]["count"] == 0
    assert payload["summary"]["total_amount"] == 0.0
    assert payload["summary"]["requested_range"] == {"from": "20240201", "to": "20240205"}
    assert payload["vouchers"] == []
    assert payload["strategy"] == "recent"
    assert "resolved_span" not in payload
