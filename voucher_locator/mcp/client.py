"""
Voucher Locator - MCP Client
----------------------------
Thin async client that spawns the MCP server as a subprocess and
invokes its tools over stdio.

Usage (async context manager):
    async with LocatorMCPClient() as client:
        last = await client.get_last_voucher(1, 11)
        result = await client.get_invoices_in_date_range(1, 11, "20240101", "20240131")
"""
from __future__ import annotations

import json
import sys

from loguru import logger
from mcp import ClientSession
from mcp.client.stdio import StdioServerParameters, stdio_client


class LocatorMCPClient:
    """
    Async context-manager wrapper around the voucher locator MCP server.

    The server process is spawned on __aenter__ and torn down on __aexit__.
    """

    def __init__(
        self,
        server_module: str = "voucher_locator.mcp.server",
        env: dict[str, str] | None = None,
        cwd: str | None = None,
    ) -> None:
        self._server_module = server_module
        self._env = env
        self._cwd = cwd
        self._session: ClientSession | None = None
        self._stdio_ctx = None
        self._session_ctx = None

    async def __aenter__(self) -> "LocatorMCPClient":
        await self._connect()
        return self

    async def __aexit__(self, *_) -> None:
        await self._disconnect()

    # --- Connection -----------------------------------------------------------

    async def _connect(self) -> None:
        params = StdioServerParameters(
            command=sys.executable,
            args=["-m", self._server_module],
            env=self._env,
            cwd=self._cwd,
        )
        self._stdio_ctx = stdio_client(params)
        read, write = await self._stdio_ctx.__aenter__()

        self._session_ctx = ClientSession(read, write)
        self._session = await self._session_ctx.__aenter__()
        await self._session.initialize()

        tools = await self._session.list_tools()
        tool_names = [t.name for t in tools.tools]
        logger.info(f"[MCP Client] Connected | tools: {tool_names}")

    async def _disconnect(self) -> None:
        if self._session_ctx:
            await self._session_ctx.__aexit__(None, None, None)
        if self._stdio_ctx:
            await self._stdio_ctx.__aexit__(None, None, None)

    # --- Tool Wrappers --------------------------------------------------------

    async def get_invoices_in_date_range(
        self,
        point_of_sale: int,
        voucher_type: int,
        date_from: str,
        date_to: str,
        batch_size: int = 20,
        max_vouchers: int = 500,
        include_details: bool = False,
    ) -> dict:
        """Run a date-range query and return the result (or error) dict."""
        result = await self._session.call_tool(
            "get_invoices_in_date_range",
            {
                "PtoVta": point_of_sale,
                "CbteTipo": voucher_type,
                "fechaDesde": date_from,
                "fechaHasta": date_to,
                "batchSize": batch_size,
                "maxVouchers": max_vouchers,
                "includeDetails": include_details,
            },
        )
        return json.loads(result.content[0].text)

    async def get_last_voucher(self, point_of_sale: int, voucher_type: int) -> dict:
        result = await self._session.call_tool(
            "get_last_voucher", {"PtoVta": point_of_sale, "CbteTipo": voucher_type}
        )
        return json.loads(result.content[0].text)

    async def get_voucher_info(self, number: int, point_of_sale: int, voucher_type: int) -> dict:
        result = await self._session.call_tool(
            "get_voucher_info",
            {"CbteNro": number, "PtoVta": point_of_sale, "CbteTipo": voucher_type},
        )
        return json.loads(result.content[0].text)
