"""Exact date filtering, ordering and summary statistics."""
from __future__ import annotations

from typing import Optional

from loguru import logger

from voucher_locator.engine.tracker import PerformanceTracker
from voucher_locator.schemas import (
    DateRange,
    FetchOutcome,
    IndexRange,
    QueryResult,
    RangeSummary,
    RequestedRange,
    ResolvedSpan,
    SearchStrategy,
    VoucherSummary,
)


class ResultAggregator:
    """
    Builds the QueryResult from raw fetch outcomes.

    The span handed to the fetcher is only an approximation of the range
    (RECENT never bounds the tail, missing probes add slack), so every
    record is re-checked against the exact inclusive date range here.
    """

    def aggregate(
        self,
        outcomes: list[FetchOutcome],
        date_range: DateRange,
        include_details: bool,
        tracker: PerformanceTracker,
        strategy: Optional[SearchStrategy] = None,
        span: Optional[ResolvedSpan] = None,
    ) -> QueryResult:
        by_index: dict[int, VoucherSummary] = {}
        failed: list[int] = []

        for outcome in outcomes:
            if not outcome.ok:
                failed.append(outcome.index)
                continue
            record = outcome.record
            if not date_range.contains(record.voucher_date):
                continue
            by_index[outcome.index] = VoucherSummary.from_record(record, include_details)

        vouchers = [by_index[i] for i in sorted(by_index)]
        if failed:
            logger.warning(f"[Aggregator] {len(failed)} voucher(s) could not be read: {sorted(failed)}")

        result = QueryResult(
            summary=RangeSummary(
                count=len(vouchers),
                total_amount=round(sum(v.total_amount for v in vouchers), 2),
                requested_range=_requested(date_range),
                matched_index_range=IndexRange(
                    first=vouchers[0].voucher_number if vouchers else 0,
                    last=vouchers[-1].voucher_number if vouchers else 0,
                ),
            ),
            vouchers=vouchers,
            performance=tracker.snapshot(),
            strategy=strategy,
            resolved_span=_span_range(span),
            failed_indices=sorted(failed),
        )
        logger.info(
            f"[Aggregator] {result.summary.count} voucher(s) in range | "
            f"total={result.summary.total_amount:,.2f} | "
            f"{result.performance.total_queries} queries in {result.performance.elapsed_ms:.0f}ms"
        )
        return result

    def empty_result(
        self,
        date_range: DateRange,
        tracker: PerformanceTracker,
        strategy: Optional[SearchStrategy] = None,
    ) -> QueryResult:
        """The well-formed zero-match result (empty partition or empty span)."""
        return QueryResult(
            summary=RangeSummary(requested_range=_requested(date_range)),
            vouchers=[],
            performance=tracker.snapshot(),
            strategy=strategy,
        )


def _requested(date_range: DateRange) -> RequestedRange:
    return RequestedRange(date_from=date_range.date_from, date_to=date_range.date_to)


def _span_range(span: Optional[ResolvedSpan]) -> Optional[IndexRange]:
    if span is None or span.is_empty:
        return None
    return IndexRange(first=span.first_index, last=span.last_index)
