"""Abstract base class for every ledger gateway."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional

from voucher_locator.schemas import PartitionKey


class RecordGateway(ABC):
    """
    Narrow read-only view of the remote voucher ledger.

    The engine needs exactly two operations, so that is all a gateway
    exposes. Implementations raise GatewayError on transport or remote
    failures and return None from fetch_by_index when the voucher does
    not exist.
    """

    def __init__(self, config: Optional[dict] = None) -> None:
        self.config = config or {}

    @abstractmethod
    async def fetch_by_index(self, index: int, partition: PartitionKey) -> Optional[dict[str, Any]]:
        """Return the raw voucher payload at index, or None if there is none."""
        ...

    @abstractmethod
    async def fetch_last_index(self, partition: PartitionKey) -> int:
        """Return the highest voucher number issued in the partition (0 if empty)."""
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """Return True if the ledger is reachable and responsive."""
        ...

    async def aclose(self) -> None:
        """Release transport resources. No-op by default."""

    async def __aenter__(self) -> "RecordGateway":
        return self

    async def __aexit__(self, *_) -> None:
        await self.aclose()
