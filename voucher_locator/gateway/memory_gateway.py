"""
In-Memory Ledger Gateway
------------------------
Dict-backed ledger used for local demos and as the engine's test double.

The ledger can be scripted to misbehave:
  - failing_indices   : fetch_by_index raises GatewayError
  - missing_indices   : fetch_by_index returns None
  - fail_last_index   : fetch_last_index raises GatewayError
  - latency           : seconds awaited before every call

Call counters and the peak number of in-flight fetches are recorded so tests
can assert on how the engine drove the ledger.

File format (data/ledger.json):
    {"partitions": [{"point_of_sale": 1, "voucher_type": 11,
                     "vouchers": [{"CbteFch": "20240101", "ImpTotal": 100.0, ...}, ...]}]}
Vouchers are numbered from 1 in list order unless they carry "CbteDesde".
"""
from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Iterable, Optional

from loguru import logger

from voucher_locator.errors import GatewayError
from voucher_locator.gateway.base import RecordGateway
from voucher_locator.schemas import PartitionKey
from voucher_locator.utils.helpers import load_json

_Key = tuple[int, int]


class InMemoryLedgerGateway(RecordGateway):
    """RecordGateway over an in-process dict of {partition: {index: payload}}."""

    def __init__(
        self,
        ledger: Optional[dict[_Key, dict[int, dict[str, Any]]]] = None,
        *,
        failing_indices: Iterable[int] = (),
        missing_indices: Iterable[int] = (),
        fail_last_index: bool = False,
        latency: float = 0.0,
    ) -> None:
        super().__init__({})
        self._ledger: dict[_Key, dict[int, dict[str, Any]]] = ledger or {}
        self.failing_indices: set[int] = set(failing_indices)
        self.missing_indices: set[int] = set(missing_indices)
        self.fail_last_index = fail_last_index
        self.latency = latency

        self.fetch_calls: list[int] = []
        self.last_index_calls: int = 0
        self._in_flight: int = 0
        self.peak_in_flight: int = 0

    # --- Construction ---------------------------------------------------------

    @classmethod
    def from_dates(
        cls,
        partition: PartitionKey,
        dates: list[str],
        amounts: Optional[list[float]] = None,
        **kwargs: Any,
    ) -> "InMemoryLedgerGateway":
        """One voucher per date, numbered 1..len(dates)."""
        vouchers = {
            i: _make_payload(i, date, amounts[i - 1] if amounts else float(i * 100))
            for i, date in enumerate(dates, start=1)
        }
        return cls({_key(partition): vouchers}, **kwargs)

    @classmethod
    def from_file(cls, path: str | Path, **kwargs: Any) -> "InMemoryLedgerGateway":
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(
                f"Ledger file not found: {path}. "
                "Run: python scripts/generate_ledger.py"
            )
        raw = load_json(path)
        ledger: dict[_Key, dict[int, dict[str, Any]]] = {}
        for part in raw.get("partitions", []):
            key = (int(part["point_of_sale"]), int(part["voucher_type"]))
            vouchers: dict[int, dict[str, Any]] = {}
            for pos, payload in enumerate(part.get("vouchers", []), start=1):
                vouchers[int(payload.get("CbteDesde", pos))] = payload
            ledger[key] = vouchers
        logger.info(f"[MemoryGateway] Loaded {len(ledger)} partition(s) from {path}")
        return cls(ledger, **kwargs)

    # --- RecordGateway --------------------------------------------------------

    async def fetch_last_index(self, partition: PartitionKey) -> int:
        self.last_index_calls += 1
        await self._delay()
        if self.fail_last_index:
            raise GatewayError(f"Last voucher lookup unavailable for {partition.label}")
        vouchers = self._ledger.get(_key(partition), {})
        return max(vouchers) if vouchers else 0

    async def fetch_by_index(self, index: int, partition: PartitionKey) -> Optional[dict[str, Any]]:
        self.fetch_calls.append(index)
        self._in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self._in_flight)
        try:
            await self._delay()
            if index in self.failing_indices:
                raise GatewayError(f"Simulated ledger error at voucher {index}", {"index": index})
            if index in self.missing_indices:
                return None
            payload = self._ledger.get(_key(partition), {}).get(index)
            return dict(payload) if payload is not None else None
        finally:
            self._in_flight -= 1

    async def health_check(self) -> bool:
        return bool(self._ledger)

    async def _delay(self) -> None:
        # Always yield so concurrent fetches interleave like real I/O.
        await asyncio.sleep(self.latency)


def _key(partition: PartitionKey) -> _Key:
    return (partition.point_of_sale, partition.voucher_type)


def _make_payload(index: int, date: str, amount: float) -> dict[str, Any]:
    return {
        "CbteDesde": index,
        "CbteHasta": index,
        "CbteFch": date,
        "ImpTotal": amount,
        "CAE": f"7{index:013d}",
        "CAEFchVto": date,
        "DocTipo": 99,
        "DocNro": 0,
    }
