"""Latest-index discovery with a backward-scan fallback."""
from __future__ import annotations

from typing import Optional

from loguru import logger

from voucher_locator.engine.tracker import PerformanceTracker
from voucher_locator.errors import ProbeFailure
from voucher_locator.gateway.base import RecordGateway
from voucher_locator.schemas import PartitionKey

FALLBACK_SCAN_START = 100


class BoundaryProbe:
    """Finds the highest issued voucher number in a partition."""

    def __init__(
        self,
        gateway: RecordGateway,
        tracker: PerformanceTracker,
        fallback_scan_start: int = FALLBACK_SCAN_START,
    ) -> None:
        self.gateway = gateway
        self.tracker = tracker
        self.fallback_scan_start = fallback_scan_start
        self.failure: Optional[ProbeFailure] = None

    async def find_latest_index(self, partition: PartitionKey) -> int:
        try:
            self.tracker.record_probe()
            latest = await self.gateway.fetch_last_index(partition)
            logger.info(f"[Probe] {partition.label}: latest voucher {latest}")
            return latest
        except Exception as exc:
            self.failure = ProbeFailure(
                f"Last voucher lookup failed for {partition.label}: {exc}",
                {"partition": partition.label},
            )
            logger.warning(f"[Probe] {self.failure.message} - scanning backward from {self.fallback_scan_start}")

        latest = await self._scan_backward(partition)
        logger.info(f"[Probe] {partition.label}: latest voucher {latest} (fallback scan)")
        return latest

    async def _scan_backward(self, partition: PartitionKey) -> int:
        """First index (scanning down) that resolves to a dated voucher, else 0."""
        for index in range(self.fallback_scan_start, 0, -1):
            self.tracker.record_probe()
            try:
                payload = await self.gateway.fetch_by_index(index, partition)
            except Exception as exc:
                logger.debug(f"[Probe] Fallback scan: voucher {index} unreadable ({exc})")
                continue
            if payload and payload.get("CbteFch"):
                return index
        return 0
