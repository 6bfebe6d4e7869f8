"""Tests for batched concurrent fetching."""
import asyncio

import pytest

from conftest import TEN_DAYS, run
from voucher_locator.engine.fetcher import BatchFetcher
from voucher_locator.errors import OperationCancelled
from voucher_locator.gateway.memory_gateway import InMemoryLedgerGateway
from voucher_locator.schemas import ResolvedSpan


def test_concurrency_never_exceeds_batch_size(partition, tracker) -> None:
    gateway = InMemoryLedgerGateway.from_dates(partition, TEN_DAYS, latency=0.01)
    calls: list[tuple[int, int]] = []

    outcomes = run(
        BatchFetcher(gateway, tracker).fetch_all(
            partition,
            ResolvedSpan(first_index=1, last_index=10),
            batch_size=4,
            progress=lambda done, total: calls.append((done, total)),
        )
    )

    assert len(outcomes) == 10
    assert gateway.peak_in_flight == 4
    assert calls == [(4, 10), (8, 10), (10, 10)]
    assert tracker.batch_queries == 10


def test_failed_and_missing_vouchers_become_error_outcomes(partition, tracker) -> None:
    gateway = InMemoryLedgerGateway.from_dates(
        partition, TEN_DAYS, failing_indices=[4], missing_indices=[6]
    )
    outcomes = run(
        BatchFetcher(gateway, tracker).fetch_all(partition, ResolvedSpan(first_index=3, last_index=7))
    )
    by_index = {o.index: o for o in outcomes}

    assert [o.index for o in outcomes] == [3, 4, 5, 6, 7]
    assert not by_index[4].ok
    assert "Simulated ledger error" in by_index[4].error
    assert by_index[6].error == "voucher not found"
    assert by_index[5].ok
    assert by_index[5].record.voucher_date == "20240105"


def test_empty_span_makes_no_calls(ten_day_ledger, partition, tracker) -> None:
    outcomes = run(BatchFetcher(ten_day_ledger, tracker).fetch_all(partition, ResolvedSpan.empty()))
    assert outcomes == []
    assert ten_day_ledger.fetch_calls == []
    assert tracker.batch_queries == 0


def test_cancel_stops_before_next_batch(ten_day_ledger, partition, tracker) -> None:
    event = asyncio.Event()

    def _cancel_after_first(done: int, total: int) -> None:
        event.set()

    fetcher = BatchFetcher(ten_day_ledger, tracker, cancel_event=event)
    with pytest.raises(OperationCancelled, match="batch fetch"):
        run(
            fetcher.fetch_all(
                partition,
                ResolvedSpan(first_index=1, last_index=10),
                batch_size=3,
                progress=_cancel_after_first,
            )
        )
    assert tracker.batch_queries == 3
    assert sorted(ten_day_ledger.fetch_calls) == [1, 2, 3]


def test_malformed_payload_becomes_error_outcome(partition, tracker) -> None:
    gateway = InMemoryLedgerGateway.from_dates(partition, TEN_DAYS)
    gateway._ledger[(1, 11)][2]["ImpTotal"] = "N/A"

    outcomes = run(
        BatchFetcher(gateway, tracker).fetch_all(partition, ResolvedSpan(first_index=1, last_index=3))
    )

    assert [o.ok for o in outcomes] == [True, False, True]
    assert "malformed payload" in outcomes[1].error
    assert tracker.batch_queries == 3
