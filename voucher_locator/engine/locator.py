"""
Range Locator
-------------
Turns a date range into an index span with sequential binary searches over
[1, latest_index]. Voucher dates are assumed non-decreasing with the voucher
number; sparse or unreadable vouchers are tolerated, out-of-order dates are not.

    HISTORICAL  search A: largest index with date <= to     -> last_index
                search B: smallest index in [1, last] with
                          date >= from                       -> first_index
    RECENT      one search: smallest index with date >= from -> first_index
                last_index = latest_index (aggregation trims the tail)

A probe that errors, returns no voucher, or has no date is resolved by
MISSING_PROBE_POLICY. The default treats it as "too early" and moves the
lower bound up, so a boundary sitting right behind a hole in the ledger can
be stepped over.
"""
from __future__ import annotations

import asyncio
from enum import Enum
from typing import Optional

from loguru import logger

from voucher_locator.engine.tracker import PerformanceTracker
from voucher_locator.errors import OperationCancelled
from voucher_locator.gateway.base import RecordGateway
from voucher_locator.schemas import DateRange, PartitionKey, ResolvedSpan, SearchStrategy


class MissingProbePolicy(str, Enum):
    TREAT_AS_TOO_EARLY = "too_early"    # low = mid + 1
    TREAT_AS_TOO_LATE = "too_late"      # high = mid - 1


MISSING_PROBE_POLICY = MissingProbePolicy.TREAT_AS_TOO_EARLY


class RangeLocator:
    """Resolves the index span that holds a date range."""

    def __init__(
        self,
        gateway: RecordGateway,
        tracker: PerformanceTracker,
        missing_policy: MissingProbePolicy = MISSING_PROBE_POLICY,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> None:
        self.gateway = gateway
        self.tracker = tracker
        self.missing_policy = missing_policy
        self.cancel_event = cancel_event

    async def locate(
        self,
        partition: PartitionKey,
        latest_index: int,
        date_range: DateRange,
        strategy: SearchStrategy,
    ) -> ResolvedSpan:
        if latest_index < 1:
            return ResolvedSpan.empty()

        if strategy is SearchStrategy.HISTORICAL:
            last = await self._last_at_or_before(partition, 1, latest_index, date_range.date_to)
            if last == 0:
                logger.info(f"[Locator] No voucher dated on or before {date_range.date_to}")
                return ResolvedSpan.empty()
            first = await self._first_at_or_after(
                partition, 1, last, date_range.date_from, default=latest_index + 1
            )
        else:
            first = await self._first_at_or_after(
                partition, 1, latest_index, date_range.date_from, default=latest_index + 1
            )
            last = latest_index

        logger.info(f"[Locator] {strategy.value} search resolved vouchers {first} to {last}")
        if first > last or first > latest_index:
            return ResolvedSpan.empty()
        return ResolvedSpan(first_index=first, last_index=last)

    # --- Binary searches ------------------------------------------------------

    async def _last_at_or_before(self, partition: PartitionKey, low: int, high: int, date_to: str) -> int:
        candidate = 0
        while low <= high:
            mid = (low + high) // 2
            date = await self._probe_date(mid, partition)
            if date is None:
                low, high = self._skip_missing(low, high, mid)
                continue
            if date <= date_to:
                candidate = mid
                low = mid + 1
            else:
                high = mid - 1
        return candidate

    async def _first_at_or_after(
        self,
        partition: PartitionKey,
        low: int,
        high: int,
        date_from: str,
        default: int,
    ) -> int:
        candidate = default
        while low <= high:
            mid = (low + high) // 2
            date = await self._probe_date(mid, partition)
            if date is None:
                low, high = self._skip_missing(low, high, mid)
                continue
            if date >= date_from:
                candidate = mid
                high = mid - 1
            else:
                low = mid + 1
        return candidate

    def _skip_missing(self, low: int, high: int, mid: int) -> tuple[int, int]:
        if self.missing_policy is MissingProbePolicy.TREAT_AS_TOO_LATE:
            return low, mid - 1
        return mid + 1, high

    async def _probe_date(self, index: int, partition: PartitionKey) -> Optional[str]:
        """Date of the voucher at index, or None when it cannot be read."""
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise OperationCancelled("binary search")

        self.tracker.record_search_probe()
        try:
            payload = await self.gateway.fetch_by_index(index, partition)
        except Exception as exc:
            logger.warning(f"[Locator] Error reading voucher {index}: {exc}")
            return None
        date = (payload or {}).get("CbteFch")
        return str(date) if date else None
