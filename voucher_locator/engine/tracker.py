"""Query accounting for a single locator run."""
from __future__ import annotations

import time

from voucher_locator.schemas import PerformanceReport


class PerformanceTracker:
    """
    Counts ledger calls by stage and measures wall-clock time.

    Only the orchestrating coroutine mutates the counters. Concurrent batch
    fetches report a per-batch count that is merged once gather() returns.
    """

    def __init__(self) -> None:
        self._started = time.perf_counter()
        self.probe_queries: int = 0
        self.binary_search_queries: int = 0
        self.batch_queries: int = 0

    @property
    def total_queries(self) -> int:
        return self.probe_queries + self.binary_search_queries + self.batch_queries

    @property
    def elapsed_ms(self) -> float:
        return (time.perf_counter() - self._started) * 1000

    def record_probe(self) -> None:
        self.probe_queries += 1

    def record_search_probe(self) -> None:
        self.binary_search_queries += 1

    def merge_batch(self, dispatched: int) -> None:
        self.batch_queries += dispatched

    def snapshot(self) -> PerformanceReport:
        return PerformanceReport(
            probe_queries=self.probe_queries,
            binary_search_queries=self.binary_search_queries,
            batch_queries=self.batch_queries,
            elapsed_ms=round(self.elapsed_ms, 1),
        )
