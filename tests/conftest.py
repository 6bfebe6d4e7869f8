"""Pytest configuration and fixtures."""
from __future__ import annotations

import asyncio
from typing import Any, Coroutine

import pytest

from voucher_locator.engine.tracker import PerformanceTracker
from voucher_locator.gateway.memory_gateway import InMemoryLedgerGateway
from voucher_locator.schemas import DateRange, DateRangeQuery, PartitionKey

TEN_DAYS = [f"202401{day:02d}" for day in range(1, 11)]


def run(coro: Coroutine[Any, Any, Any]) -> Any:
    """Drive a coroutine to completion on a fresh event loop."""
    return asyncio.run(coro)


def make_query(date_from: str, date_to: str, **kwargs: Any) -> DateRangeQuery:
    return DateRangeQuery(
        partition=PartitionKey(point_of_sale=1, voucher_type=11),
        date_from=date_from,
        date_to=date_to,
        **kwargs,
    )


@pytest.fixture
def partition() -> PartitionKey:
    return PartitionKey(point_of_sale=1, voucher_type=11)


@pytest.fixture
def tracker() -> PerformanceTracker:
    return PerformanceTracker()


@pytest.fixture
def ten_day_ledger(partition: PartitionKey) -> InMemoryLedgerGateway:
    """Vouchers 1..10 dated 20240101..20240110, voucher n totals n * 100."""
    return InMemoryLedgerGateway.from_dates(partition, TEN_DAYS)


@pytest.fixture
def date_range() -> DateRange:
    return DateRange(date_from="20240103", date_to="20240105")
