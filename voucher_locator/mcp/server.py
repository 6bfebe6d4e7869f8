"""
Voucher Locator - MCP Server
----------------------------
A Model Context Protocol server that exposes ledger read tools to any
MCP-compatible client.

Tools:
  get_invoices_in_date_range  every voucher dated inside [fechaDesde, fechaHasta]
  get_last_voucher            latest voucher number of a point of sale / type
  get_voucher_info            full detail of one voucher

Run standalone:
    python -m voucher_locator.mcp.server
"""
from __future__ import annotations

import asyncio
from typing import Optional

import mcp.server.stdio
from loguru import logger
from mcp.server import NotificationOptions, Server
from mcp.server.models import InitializationOptions
from mcp.types import TextContent, Tool
from pydantic import ValidationError

from voucher_locator.config import LocatorConfig, build_gateway, load_config
from voucher_locator.engine.pipeline import DateRangeLocator
from voucher_locator.errors import InvalidQuery
from voucher_locator.gateway.base import RecordGateway
from voucher_locator.schemas import DateRangeQuery, ErrorResult, PartitionKey
from voucher_locator.utils.helpers import dumps_pretty
from voucher_locator.utils.logger import setup_logger

SERVER_NAME = "voucher-locator"
SERVER_VERSION = "1.0.0"

# --- Shared state -------------------------------------------------------------

_CONFIG: Optional[LocatorConfig] = None
_GATEWAY: Optional[RecordGateway] = None


def configure(gateway: RecordGateway, config: Optional[LocatorConfig] = None) -> None:
    """Install the gateway (and config) every tool call reads from."""
    global _CONFIG, _GATEWAY
    _GATEWAY = gateway
    _CONFIG = config or LocatorConfig()


def _state() -> tuple[RecordGateway, LocatorConfig]:
    global _CONFIG, _GATEWAY
    if _CONFIG is None:
        _CONFIG = load_config()
    if _GATEWAY is None:
        _GATEWAY = build_gateway(_CONFIG)
    return _GATEWAY, _CONFIG


def _text(payload: object) -> list[TextContent]:
    return [TextContent(type="text", text=dumps_pretty(payload))]


_PARTITION_PROPERTIES = {
    "PtoVta": {
        "type": "integer",
        "description": "Point of sale of the voucher (>= 1)",
    },
    "CbteTipo": {
        "type": "integer",
        "description": "Voucher type code (>= 1)",
    },
}

# --- MCP Server ---------------------------------------------------------------

server = Server(SERVER_NAME)


@server.list_tools()
async def list_tools() -> list[Tool]:
    return [
        Tool(
            name="get_invoices_in_date_range",
            description=(
                "Return every voucher issued in a date range using a binary search "
                "over voucher numbers followed by parallel batch lookups. "
                "Includes totals, the matched voucher-number range and query statistics."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    **_PARTITION_PROPERTIES,
                    "fechaDesde": {
                        "type": "string",
                        "description": "Start date, inclusive, YYYYMMDD",
                        "pattern": r"^\d{8}$",
                    },
                    "fechaHasta": {
                        "type": "string",
                        "description": "End date, inclusive, YYYYMMDD",
                        "pattern": r"^\d{8}$",
                    },
                    "batchSize": {
                        "type": "integer",
                        "description": "Parallel lookups per batch (1-50, default 20)",
                        "default": 20,
                    },
                    "maxVouchers": {
                        "type": "integer",
                        "description": "Maximum vouchers the range may span (1-1000, default 500)",
                        "default": 500,
                    },
                    "includeDetails": {
                        "type": "boolean",
                        "description": "Include the full voucher payload (default false)",
                        "default": False,
                    },
                },
                "required": ["PtoVta", "CbteTipo", "fechaDesde", "fechaHasta"],
            },
        ),
        Tool(
            name="get_last_voucher",
            description="Return the number of the last voucher issued for a point of sale and type.",
            inputSchema={
                "type": "object",
                "properties": dict(_PARTITION_PROPERTIES),
                "required": ["PtoVta", "CbteTipo"],
            },
        ),
        Tool(
            name="get_voucher_info",
            description="Return the full record of an already issued voucher.",
            inputSchema={
                "type": "object",
                "properties": {
                    "CbteNro": {
                        "type": "integer",
                        "description": "Voucher number to look up (>= 1)",
                    },
                    **_PARTITION_PROPERTIES,
                },
                "required": ["CbteNro", "PtoVta", "CbteTipo"],
            },
        ),
    ]


@server.call_tool()
async def call_tool(name: str, arguments: dict) -> list[TextContent]:
    try:
        match name:
            case "get_invoices_in_date_range":
                return await _invoices_in_date_range(arguments)
            case "get_last_voucher":
                return await _last_voucher(arguments)
            case "get_voucher_info":
                return await _voucher_info(arguments)
            case _:
                return [TextContent(type="text", text=f"Unknown tool: {name}")]
    except Exception as exc:
        logger.error(f"[MCP] Tool error [{name}]: {exc}")
        return _text({"error": f"Error in {name}: {exc}"})


# --- Tool Implementations -----------------------------------------------------

async def _invoices_in_date_range(args: dict) -> list[TextContent]:
    gateway, cfg = _state()
    try:
        query = DateRangeQuery.from_tool_arguments(
            args,
            batch_size=cfg.search.default_batch_size,
            max_records=cfg.search.default_max_records,
        )
    except ValidationError as exc:
        return _text(_invalid(exc).to_payload())

    locator = DateRangeLocator(gateway, fallback_scan_start=cfg.search.fallback_scan_start)
    result = await locator.run(query)
    return _text(result.to_payload())


async def _last_voucher(args: dict) -> list[TextContent]:
    gateway, _ = _state()
    try:
        partition = PartitionKey(point_of_sale=args.get("PtoVta"), voucher_type=args.get("CbteTipo"))
    except ValidationError as exc:
        return _text(_invalid(exc).to_payload())

    last = await gateway.fetch_last_index(partition)
    return _text({"PtoVta": partition.point_of_sale, "CbteTipo": partition.voucher_type, "CbteNro": last})


async def _voucher_info(args: dict) -> list[TextContent]:
    gateway, _ = _state()
    try:
        partition = PartitionKey(point_of_sale=args.get("PtoVta"), voucher_type=args.get("CbteTipo"))
        number = int(args["CbteNro"])
    except (ValidationError, KeyError, TypeError, ValueError) as exc:
        return _text(_invalid(exc).to_payload())
    if number < 1:
        return _text(_invalid(ValueError("CbteNro must be >= 1")).to_payload())

    payload = await gateway.fetch_by_index(number, partition)
    if payload is None:
        return _text({"message": f"Voucher {number} does not exist"})
    return _text(payload)


def _invalid(exc: Exception) -> ErrorResult:
    if isinstance(exc, ValidationError):
        problems = [
            f"{'.'.join(str(p) for p in err['loc']) or 'input'}: {err['msg']}"
            for err in exc.errors()
        ]
    else:
        problems = [str(exc)]
    error = InvalidQuery("Invalid tool arguments: " + "; ".join(problems), {"problems": problems})
    return DateRangeLocator.error_result(error)


# --- Entry Point --------------------------------------------------------------

async def main() -> None:
    _, cfg = _state()
    setup_logger(log_level=cfg.logging.level, log_file=cfg.logging.file)
    async with mcp.server.stdio.stdio_server() as (read_stream, write_stream):
        await server.run(
            read_stream,
            write_stream,
            InitializationOptions(
                server_name=SERVER_NAME,
                server_version=SERVER_VERSION,
                capabilities=server.get_capabilities(
                    notification_options=NotificationOptions(),
                    experimental_capabilities={},
                ),
            ),
        )


if __name__ == "__main__":
    asyncio.run(main())
