"""
HTTP Ledger Gateway
-------------------
Reads vouchers from a JSON ledger proxy sitting in front of the electronic
invoicing web service. Authentication and the upstream wire format are the
proxy's business; this gateway only speaks two GET routes:

    GET {base_url}/partitions/{pos}/{type}/last             -> {"last_index": n}
    GET {base_url}/partitions/{pos}/{type}/vouchers/{n}     -> voucher payload | 404

Transport errors are retried a bounded number of times (tenacity) before
surfacing as GatewayError. HTTP error statuses are never retried.
"""
from __future__ import annotations

from typing import Any, Optional

import httpx
from loguru import logger
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from voucher_locator.errors import GatewayError
from voucher_locator.gateway.base import RecordGateway
from voucher_locator.schemas import PartitionKey

_HEADERS = {"User-Agent": "VoucherLocator/1.0", "Accept": "application/json"}


class HttpLedgerGateway(RecordGateway):
    """RecordGateway backed by an httpx.AsyncClient."""

    def __init__(self, config: dict, client: Optional[httpx.AsyncClient] = None) -> None:
        super().__init__(config)
        self.base_url: str = config.get("base_url", "http://localhost:8080").rstrip("/")
        self.timeout: float = float(config.get("timeout", 30.0))
        self.retry_attempts: int = max(1, int(config.get("retry_attempts", 2)))
        self._client = client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers=_HEADERS,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    # --- RecordGateway --------------------------------------------------------

    async def fetch_last_index(self, partition: PartitionKey) -> int:
        resp = await self._get(f"{self._prefix(partition)}/last")
        if resp.status_code != 200:
            raise GatewayError(
                f"Last voucher lookup failed for {partition.label}: HTTP {resp.status_code}",
                {"status_code": resp.status_code},
            )
        body = self._json(resp)
        if isinstance(body, dict):
            body = body.get("last_index", body.get("CbteNro"))
        try:
            return int(body)
        except (TypeError, ValueError) as exc:
            raise GatewayError(f"Malformed last-index response: {body!r}") from exc

    async def fetch_by_index(self, index: int, partition: PartitionKey) -> Optional[dict[str, Any]]:
        resp = await self._get(f"{self._prefix(partition)}/vouchers/{index}")
        if resp.status_code == 404:
            return None
        if resp.status_code != 200:
            raise GatewayError(
                f"Voucher {index} lookup failed for {partition.label}: HTTP {resp.status_code}",
                {"status_code": resp.status_code, "index": index},
            )
        body = self._json(resp)
        return body if isinstance(body, dict) else None

    async def health_check(self) -> bool:
        try:
            resp = await self._get("/health")
            return resp.status_code < 500
        except GatewayError as exc:
            logger.warning(f"[HttpGateway] Health check failed: {exc}")
            return False

    # --- Transport ------------------------------------------------------------

    @staticmethod
    def _prefix(partition: PartitionKey) -> str:
        return f"/partitions/{partition.point_of_sale}/{partition.voucher_type}"

    @staticmethod
    def _json(resp: httpx.Response) -> Any:
        try:
            return resp.json()
        except ValueError as exc:
            raise GatewayError(
                f"Malformed JSON from {resp.request.url}: {exc}",
                {"status_code": resp.status_code},
            ) from exc

    async def _get(self, path: str) -> httpx.Response:
        """GET with bounded retry on transport errors only."""
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.retry_attempts),
                wait=wait_exponential(multiplier=0.5, min=0.5, max=5),
                retry=retry_if_exception_type(httpx.TransportError),
                reraise=True,
            ):
                with attempt:
                    resp = await self._client.get(path)
        except httpx.TransportError as exc:
            raise GatewayError(
                f"Ledger unreachable at {self.base_url}{path}: {exc}",
                {"path": path, "type": exc.__class__.__name__},
            ) from exc
        return resp
