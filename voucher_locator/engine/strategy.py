"""Historical vs recent range classification."""
from __future__ import annotations

from loguru import logger

from voucher_locator.engine.tracker import PerformanceTracker
from voucher_locator.gateway.base import RecordGateway
from voucher_locator.schemas import DateRange, PartitionKey, SearchStrategy


class RangeStrategySelector:
    """
    Decides which binary-search shape the locator should run.

    HISTORICAL when the newest voucher is dated strictly after date_to, so
    the range needs both an upper and a lower boundary search. Anything
    else, including an unreadable newest voucher, falls back to RECENT.
    """

    def __init__(self, gateway: RecordGateway, tracker: PerformanceTracker) -> None:
        self.gateway = gateway
        self.tracker = tracker

    async def classify(
        self,
        partition: PartitionKey,
        latest_index: int,
        date_range: DateRange,
    ) -> SearchStrategy:
        latest_date = ""
        try:
            self.tracker.record_search_probe()
            payload = await self.gateway.fetch_by_index(latest_index, partition)
            latest_date = str((payload or {}).get("CbteFch") or "")
        except Exception as exc:
            logger.warning(f"[Strategy] Could not read voucher {latest_index}: {exc}")

        if latest_date and latest_date > date_range.date_to:
            strategy = SearchStrategy.HISTORICAL
        else:
            strategy = SearchStrategy.RECENT

        logger.info(
            f"[Strategy] {strategy.value} range detected | "
            f"latest date={latest_date or 'unknown'} | to={date_range.date_to}"
        )
        return strategy
