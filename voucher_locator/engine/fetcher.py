"""
Batch Fetcher
-------------
Reads every voucher in a resolved span, one batch at a time.

Indices inside a batch are fetched concurrently with asyncio.gather; the
next batch starts only when every fetch of the current one has settled, so
at most batch_size requests are ever in flight against the ledger.

A failing, missing or malformed voucher becomes an error outcome for its
index and never aborts the batch.
"""
from __future__ import annotations

import asyncio
from typing import Callable, Optional

from loguru import logger

from voucher_locator.engine.tracker import PerformanceTracker
from voucher_locator.errors import OperationCancelled, TransientRecordError
from voucher_locator.gateway.base import RecordGateway
from voucher_locator.schemas import FetchOutcome, PartitionKey, ResolvedSpan, VoucherRecord

ProgressCallback = Callable[[int, int], None]

DEFAULT_BATCH_SIZE = 20


class BatchFetcher:
    def __init__(
        self,
        gateway: RecordGateway,
        tracker: PerformanceTracker,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> None:
        self.gateway = gateway
        self.tracker = tracker
        self.cancel_event = cancel_event

    async def fetch_all(
        self,
        partition: PartitionKey,
        span: ResolvedSpan,
        batch_size: int = DEFAULT_BATCH_SIZE,
        progress: Optional[ProgressCallback] = None,
    ) -> list[FetchOutcome]:
        """Fetch every index in span. Returns one outcome per index, in batch order."""
        outcomes: list[FetchOutcome] = []
        if span.is_empty:
            return outcomes

        indices = list(span.indices())
        total = len(indices)
        logger.info(f"[Fetcher] Processing {total} vouchers in batches of {batch_size}")

        for start in range(0, total, batch_size):
            if self.cancel_event is not None and self.cancel_event.is_set():
                raise OperationCancelled("batch fetch")

            batch = indices[start: start + batch_size]
            results = await asyncio.gather(*(self._fetch_one(i, partition) for i in batch))
            self.tracker.merge_batch(len(batch))
            outcomes.extend(results)

            processed = min(start + batch_size, total)
            failed = sum(1 for r in results if not r.ok)
            logger.debug(
                f"[Fetcher] Batch {start // batch_size + 1} | "
                f"{len(batch)} vouchers | {failed} failed | "
                f"progress {processed}/{total}"
            )
            if progress is not None:
                progress(processed, total)

        return outcomes

    async def _fetch_one(self, index: int, partition: PartitionKey) -> FetchOutcome:
        try:
            payload = await self.gateway.fetch_by_index(index, partition)
        except Exception as exc:
            err = TransientRecordError(index, str(exc))
            logger.warning(f"[Fetcher] {err.message}")
            return FetchOutcome(index=index, error=err.reason)

        if not payload:
            return FetchOutcome(index=index, error="voucher not found")
        try:
            record = VoucherRecord.from_payload(index, payload)
        except (TypeError, ValueError) as exc:
            err = TransientRecordError(index, f"malformed payload: {exc}")
            logger.warning(f"[Fetcher] {err.message}")
            return FetchOutcome(index=index, error=err.reason)
        return FetchOutcome(index=index, record=record)
