"""
Date-Range Locator Pipeline
---------------------------
Orchestrates one date-range query end to end:

    BoundaryProbe           latest voucher number (fallback: backward scan)
        |                   latest == 0 -> empty result
        v
    RangeStrategySelector   HISTORICAL or RECENT
        |
        v
    RangeLocator            binary search(es) -> ResolvedSpan
        |                   empty span -> empty result
        v
    SafetyGuard             span.size > max_records -> error result
        |
        v
    BatchFetcher            sequential batches of concurrent fetches
        |
        v
    ResultAggregator        exact filter, sort, totals -> QueryResult

A PerformanceTracker is created per run and threaded through every stage.
run() never raises: fatal failures come back as an ErrorResult carrying the
counters accumulated up to the failure.
"""
from __future__ import annotations

import asyncio
from typing import Optional

from loguru import logger

from voucher_locator.engine.aggregator import ResultAggregator
from voucher_locator.engine.fetcher import BatchFetcher, ProgressCallback
from voucher_locator.engine.locator import MISSING_PROBE_POLICY, MissingProbePolicy, RangeLocator
from voucher_locator.engine.probe import FALLBACK_SCAN_START, BoundaryProbe
from voucher_locator.engine.safety import SafetyGuard
from voucher_locator.engine.strategy import RangeStrategySelector
from voucher_locator.engine.tracker import PerformanceTracker
from voucher_locator.errors import LocatorError, UnexpectedFailure
from voucher_locator.gateway.base import RecordGateway
from voucher_locator.schemas import DateRangeQuery, ErrorResult, QueryResult


class DateRangeLocator:
    """Finds every voucher of one partition dated inside [date_from, date_to]."""

    def __init__(
        self,
        gateway: RecordGateway,
        fallback_scan_start: int = FALLBACK_SCAN_START,
        missing_policy: MissingProbePolicy = MISSING_PROBE_POLICY,
    ) -> None:
        self.gateway = gateway
        self.fallback_scan_start = fallback_scan_start
        self.missing_policy = missing_policy
        self.guard = SafetyGuard()
        self.aggregator = ResultAggregator()

    async def run(
        self,
        query: DateRangeQuery,
        cancel_event: Optional[asyncio.Event] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> QueryResult | ErrorResult:
        tracker = PerformanceTracker()
        try:
            return await self._run(query, tracker, cancel_event, progress)
        except LocatorError as exc:
            return self.error_result(exc, tracker)
        except Exception as exc:
            logger.exception(f"[Pipeline] Unexpected failure: {exc}")
            return self.error_result(UnexpectedFailure(exc), tracker)

    async def _run(
        self,
        query: DateRangeQuery,
        tracker: PerformanceTracker,
        cancel_event: Optional[asyncio.Event],
        progress: Optional[ProgressCallback],
    ) -> QueryResult:
        partition = query.partition
        date_range = query.date_range
        logger.info(
            f"[Pipeline] {partition.label} | {date_range.date_from} -> {date_range.date_to} | "
            f"batch={query.batch_size} max={query.max_records}"
        )

        # -- Step 1: latest voucher -------------------------------------------
        probe = BoundaryProbe(self.gateway, tracker, self.fallback_scan_start)
        latest = await probe.find_latest_index(partition)
        warnings = [probe.failure.instructions] if probe.failure else []
        if latest == 0:
            logger.info(f"[Pipeline] Partition {partition.label} is empty")
            result = self.aggregator.empty_result(date_range, tracker)
            result.warnings = warnings
            return result

        # -- Step 2: strategy -------------------------------------------------
        strategy = await RangeStrategySelector(self.gateway, tracker).classify(
            partition, latest, date_range
        )

        # -- Step 3: span -----------------------------------------------------
        locator = RangeLocator(self.gateway, tracker, self.missing_policy, cancel_event)
        span = await locator.locate(partition, latest, date_range, strategy)
        if span.is_empty:
            logger.info("[Pipeline] No vouchers in the requested date range")
            result = self.aggregator.empty_result(date_range, tracker, strategy)
            result.warnings = warnings
            return result

        # -- Step 4: safety cap -----------------------------------------------
        self.guard.check(span, query.max_records)

        # -- Step 5: fetch ----------------------------------------------------
        fetcher = BatchFetcher(self.gateway, tracker, cancel_event)
        outcomes = await fetcher.fetch_all(partition, span, query.batch_size, progress)

        # -- Step 6: aggregate ------------------------------------------------
        result = self.aggregator.aggregate(
            outcomes, date_range, query.include_details, tracker, strategy, span
        )
        result.warnings = warnings
        return result

    @staticmethod
    def error_result(exc: LocatorError, tracker: Optional[PerformanceTracker] = None) -> ErrorResult:
        """Convert a tagged failure into the structured error payload."""
        tracker = tracker or PerformanceTracker()
        logger.error(f"[Pipeline] {exc.kind.value}: {exc.message}")
        return ErrorResult(
            error=exc.message,
            error_kind=exc.kind.value,
            details=exc.details,
            instructions=exc.instructions,
            performance=tracker.snapshot(),
        )
