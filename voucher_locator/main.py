"""
Voucher Locator - CLI Entry Point
---------------------------------
Exposes Typer commands over the ledger gateway configured in config/config.yaml.

Usage:
    python -m voucher_locator.main search 1 11 20240101 20240131
    python -m voucher_locator.main search 1 11 20240101 20240131 --json
    python -m voucher_locator.main last 1 11
    python -m voucher_locator.main info 1 11 42
    python -m voucher_locator.main health
    python -m voucher_locator.main serve          # MCP server on stdio
"""
from __future__ import annotations

import sys

# Windows cp1252 terminal fix
if sys.platform == "win32":
    sys.stdout.reconfigure(encoding="utf-8", errors="replace")
    sys.stderr.reconfigure(encoding="utf-8", errors="replace")

import asyncio
from typing import NoReturn, Optional

import typer
from pydantic import ValidationError
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, MofNCompleteColumn, Progress, SpinnerColumn, TextColumn
from rich.table import Table

from voucher_locator.config import DEFAULT_CONFIG_PATH, LocatorConfig, build_gateway, load_config
from voucher_locator.engine.pipeline import DateRangeLocator
from voucher_locator.errors import LocatorError
from voucher_locator.schemas import DateRangeQuery, ErrorResult, PartitionKey, QueryResult
from voucher_locator.utils.helpers import dumps_pretty, format_display_date, truncate_text
from voucher_locator.utils.logger import setup_logger

app = typer.Typer(
    name="voucher-locator",
    help="Voucher Locator - date-range retrieval over a sequence-numbered invoice ledger",
    add_completion=False,
)
console = Console()


# --- Helpers ------------------------------------------------------------------

def _bootstrap(config_path: str, log_level: Optional[str] = None) -> LocatorConfig:
    cfg = load_config(config_path)
    setup_logger(log_level=log_level or cfg.logging.level, log_file=cfg.logging.file)
    return cfg


def _partition(point_of_sale: int, voucher_type: int) -> PartitionKey:
    try:
        return PartitionKey(point_of_sale=point_of_sale, voucher_type=voucher_type)
    except ValidationError as exc:
        console.print(f"[red]Invalid partition:[/red] {exc.errors()[0]['msg']}")
        raise typer.Exit(2)


def _fail(exc: Exception) -> NoReturn:
    message = exc.message if isinstance(exc, LocatorError) else str(exc)
    console.print(f"[red]{message}[/red]")
    raise typer.Exit(1)


# --- Commands -----------------------------------------------------------------

@app.command()
def search(
    point_of_sale: int = typer.Argument(..., help="Point of sale (PtoVta)"),
    voucher_type: int = typer.Argument(..., help="Voucher type (CbteTipo)"),
    date_from: str = typer.Argument(..., help="Start date, inclusive, YYYYMMDD"),
    date_to: str = typer.Argument(..., help="End date, inclusive, YYYYMMDD"),
    batch_size: Optional[int] = typer.Option(
        None, "--batch-size", "-b", help="Parallel lookups per batch (1-50)"
    ),
    max_records: Optional[int] = typer.Option(
        None, "--max-records", "-m", help="Largest span allowed before aborting (1-1000)"
    ),
    details: bool = typer.Option(False, "--details", help="Include full voucher payloads"),
    json_out: bool = typer.Option(False, "--json", help="Print the result as JSON"),
    config: str = typer.Option(DEFAULT_CONFIG_PATH, "--config", "-c", help="Path to config YAML"),
) -> None:
    """
    Find every voucher dated inside [DATE_FROM, DATE_TO].

    \b
    Steps:
      1. Latest voucher number (fallback: backward scan)
      2. Historical / recent strategy
      3. Binary search for the voucher-number span
      4. Safety cap check
      5. Batched parallel lookups, exact date filter
    """
    cfg = _bootstrap(config, "WARNING" if json_out else None)
    try:
        query = DateRangeQuery(
            partition=PartitionKey(point_of_sale=point_of_sale, voucher_type=voucher_type),
            date_from=date_from,
            date_to=date_to,
            batch_size=batch_size if batch_size is not None else cfg.search.default_batch_size,
            max_records=max_records if max_records is not None else cfg.search.default_max_records,
            include_details=details,
        )
    except ValidationError as exc:
        for err in exc.errors():
            console.print(f"[red]Invalid argument:[/red] {err['msg']}")
        raise typer.Exit(2)

    try:
        result = asyncio.run(_search_async(cfg, query, show_progress=not json_out))
    except FileNotFoundError as exc:
        _fail(exc)

    if json_out:
        console.print_json(dumps_pretty(result.to_payload()))
    elif isinstance(result, ErrorResult):
        _print_error(result)
    else:
        _print_result(result)

    if isinstance(result, ErrorResult):
        raise typer.Exit(1)


@app.command()
def last(
    point_of_sale: int = typer.Argument(..., help="Point of sale (PtoVta)"),
    voucher_type: int = typer.Argument(..., help="Voucher type (CbteTipo)"),
    config: str = typer.Option(DEFAULT_CONFIG_PATH, "--config", "-c", help="Path to config YAML"),
) -> None:
    """Print the last voucher number issued in a partition."""
    cfg = _bootstrap(config)
    partition = _partition(point_of_sale, voucher_type)

    async def _run() -> int:
        async with build_gateway(cfg) as gateway:
            return await gateway.fetch_last_index(partition)

    try:
        latest = asyncio.run(_run())
    except (LocatorError, FileNotFoundError) as exc:
        _fail(exc)
    console.print(f"Last voucher for {partition.label}: [bold]{latest}[/bold]")


@app.command()
def info(
    point_of_sale: int = typer.Argument(..., help="Point of sale (PtoVta)"),
    voucher_type: int = typer.Argument(..., help="Voucher type (CbteTipo)"),
    number: int = typer.Argument(..., help="Voucher number (CbteNro)"),
    config: str = typer.Option(DEFAULT_CONFIG_PATH, "--config", "-c", help="Path to config YAML"),
) -> None:
    """Print the full record of one voucher."""
    cfg = _bootstrap(config)
    partition = _partition(point_of_sale, voucher_type)

    async def _run():
        async with build_gateway(cfg) as gateway:
            return await gateway.fetch_by_index(number, partition)

    try:
        payload = asyncio.run(_run())
    except (LocatorError, FileNotFoundError) as exc:
        _fail(exc)
    if payload is None:
        console.print(f"[yellow]Voucher {number} does not exist in {partition.label}[/yellow]")
        raise typer.Exit(1)
    console.print_json(dumps_pretty(payload))


@app.command()
def health(
    config: str = typer.Option(DEFAULT_CONFIG_PATH, "--config", "-c", help="Path to config YAML"),
) -> None:
    """Check that the configured ledger is reachable."""
    cfg = _bootstrap(config)

    async def _run() -> bool:
        async with build_gateway(cfg) as gateway:
            return await gateway.health_check()

    try:
        ok = asyncio.run(_run())
    except FileNotFoundError as exc:
        _fail(exc)
    label = f"{cfg.gateway.kind} gateway"
    if ok:
        console.print(f"[green][OK] {label} healthy[/green]")
    else:
        console.print(f"[red][FAIL] {label} UNREACHABLE[/red]")
        raise typer.Exit(1)


@app.command()
def serve() -> None:
    """Run the MCP server on stdio."""
    from voucher_locator.mcp.server import main as serve_main

    asyncio.run(serve_main())


# --- Async search -------------------------------------------------------------

async def _search_async(
    cfg: LocatorConfig,
    query: DateRangeQuery,
    show_progress: bool,
) -> QueryResult | ErrorResult:
    async with build_gateway(cfg) as gateway:
        locator = DateRangeLocator(gateway, fallback_scan_start=cfg.search.fallback_scan_start)
        if not show_progress:
            return await locator.run(query)

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            console=console,
            transient=True,
        ) as progress:
            task_id = progress.add_task(f"[cyan]{query.partition.label}[/cyan]", total=None)

            def _on_batch(processed: int, total: int) -> None:
                progress.update(task_id, completed=processed, total=total)

            return await locator.run(query, progress=_on_batch)


# --- Rendering ----------------------------------------------------------------

def _print_result(result: QueryResult) -> None:
    """Render a QueryResult to the terminal using Rich."""
    summary = result.summary
    rng = summary.requested_range
    console.print()
    console.print(
        Panel(
            f"[bold]{summary.count}[/bold] voucher(s) between "
            f"{format_display_date(rng.date_from)} and {format_display_date(rng.date_to)}\n"
            f"Total amount: [bold green]{summary.total_amount:,.2f}[/bold green]\n"
            f"Voucher numbers: {summary.matched_index_range.first} - {summary.matched_index_range.last}",
            title="[bold cyan]Date range[/bold cyan]",
            border_style="cyan",
            expand=False,
        )
    )

    if result.vouchers:
        table = Table(
            "No.", "Date", "Total", "CAE", "CAE expiry",
            box=box.SIMPLE,
            show_header=True,
            header_style="bold dim",
        )
        for v in result.vouchers:
            table.add_row(
                str(v.voucher_number),
                format_display_date(v.voucher_date),
                f"{v.total_amount:,.2f}",
                v.auth_code,
                format_display_date(v.auth_expiry),
            )
        console.print(table)

    if result.failed_indices:
        console.print(
            f"[yellow]Unreadable vouchers skipped:[/yellow] "
            f"{truncate_text(', '.join(str(i) for i in result.failed_indices), 120)}"
        )
    for warning in result.warnings:
        console.print(f"[yellow]{warning}[/yellow]")

    perf = result.performance
    console.print(
        f"[dim]"
        f"strategy={result.strategy.value if result.strategy else '-'}  "
        f"probe={perf.probe_queries}  "
        f"search={perf.binary_search_queries}  "
        f"batch={perf.batch_queries}  "
        f"total={perf.total_queries}  |  "
        f"{perf.elapsed_ms:.0f}ms"
        f"[/dim]\n"
    )


def _print_error(result: ErrorResult) -> None:
    console.print(
        Panel(
            f"[red]{result.error}[/red]\n\n[dim]{result.instructions}[/dim]",
            title=f"[red]{result.error_kind}[/red]",
            border_style="red",
            expand=False,
        )
    )
    perf = result.performance
    console.print(f"[dim]queries so far={perf.total_queries}  |  {perf.elapsed_ms:.0f}ms[/dim]")


# --- Entry Point --------------------------------------------------------------

if __name__ == "__main__":
    app()
