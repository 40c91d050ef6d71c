"""
Upstream commands - query the procurement API directly.
"""

from __future__ import annotations

import asyncio
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from procurerelay.core.config.models import AppConfig
from procurerelay.core.errors import UpstreamError
from procurerelay.core.models import DataKind, FetchParams
from procurerelay.core.upstream.client import UpstreamClient
from procurerelay.core.upstream.query import ApiStatus, ProcurementQueryService, QueryResult

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    help="Query the upstream procurement API",
    no_args_is_help=True,
)

# Columns shown per kind: (header, field)
_COLUMNS: dict[DataKind, list[tuple[str, str]]] = {
    DataKind.BID_NOTICE: [
        ("No.", "bidNtceNo"),
        ("Name", "bidNtceNm"),
        ("Agency", "dminsttNm"),
        ("Method", "bidMethdNm"),
        ("Est. Price", "presmptPrce"),
        ("Opening", "opengDt"),
    ],
    DataKind.CONTRACT: [
        ("No.", "cntrctNo"),
        ("Name", "cntrctNm"),
        ("Agency", "dminsttNm"),
        ("Method", "cntrctMthdNm"),
        ("Price", "cntrctPrce"),
        ("Date", "cntrctDt"),
    ],
}


def build_query_service(config: AppConfig) -> ProcurementQueryService:
    return ProcurementQueryService(UpstreamClient.from_config(config.upstream))


async def _run_query(config: AppConfig, kind: DataKind, params: FetchParams, **filters: Optional[str]) -> QueryResult:
    service = build_query_service(config)
    try:
        if kind is DataKind.BID_NOTICE:
            return await service.list_bids(params, **filters)
        return await service.list_contracts(params, **filters)
    finally:
        await service.client.close()


async def _run_status(config: AppConfig) -> ApiStatus:
    service = build_query_service(config)
    try:
        return await service.status()
    finally:
        await service.client.close()


def _show_query(kind: DataKind, result: QueryResult) -> None:
    payload = result.payload
    title = f"{kind.label.capitalize()}s - page {payload.page_no} ({payload.total_count} total)"
    table = Table(title=title)

    columns = _COLUMNS[kind]
    for header, _ in columns:
        table.add_column(header, overflow="fold")

    for item in payload.items:
        row = item.to_wire()
        table.add_row(*(str(row.get(field) or "-") for _, field in columns))

    console.print(table)
    if result.using_substitute:
        console.print("[yellow]No service key configured - showing substitute data[/yellow]")


def _list(
    config: AppConfig,
    kind: DataKind,
    page_no: int,
    num_of_rows: int,
    from_date: Optional[str],
    to_date: Optional[str],
    **filters: Optional[str],
) -> None:
    try:
        params = FetchParams(page_no, num_of_rows, from_date, to_date)
    except ValueError as e:
        err_console.print(f"[red]{e}[/red]")
        raise typer.Exit(2)

    try:
        result = asyncio.run(_run_query(config, kind, params, **filters))
    except UpstreamError as e:
        err_console.print(f"[red]Upstream error:[/red] {e}")
        raise typer.Exit(1)

    _show_query(kind, result)


@app.command("status")
def status(ctx: typer.Context) -> None:
    """Show upstream availability and client configuration."""
    config: AppConfig = ctx.obj
    api_status = asyncio.run(_run_status(config))

    table = Table(title="Upstream Status", show_header=False)
    table.add_column("Key", style="cyan")
    table.add_column("Value")

    available = "[green]available[/green]" if api_status.available else "[red]unavailable[/red]"
    table.add_row("Status", available)
    table.add_row("Substitute data", "yes" if api_status.using_substitute else "no")
    for key, value in api_status.config.items():
        if isinstance(value, dict):
            value = ", ".join(f"{k}={v}" for k, v in value.items())
        table.add_row(key, str(value))

    console.print(table)

    if not api_status.available:
        raise typer.Exit(1)


@app.command("bids")
def list_bids(
    ctx: typer.Context,
    keyword: Optional[str] = typer.Option(None, "--keyword", "-k", help="Match notice name"),
    institution: Optional[str] = typer.Option(None, "--institution", "-i", help="Demand agency name"),
    method: Optional[str] = typer.Option(None, "--method", "-m", help="Bid method name"),
    page_no: int = typer.Option(1, "--page-no", "-p", help="Page number"),
    num_of_rows: int = typer.Option(10, "--num-of-rows", "-n", help="Rows per page (1-100)", min=1, max=100),
    from_date: Optional[str] = typer.Option(None, "--from", help="Start date (YYYYMMDD)"),
    to_date: Optional[str] = typer.Option(None, "--to", help="End date (YYYYMMDD)"),
) -> None:
    """List bid notices.

    Examples:
        procurerelay upstream bids --keyword AI
        procurerelay upstream bids -i 행정안전부 --from 20250101 --to 20250131
    """
    if keyword is not None and len(keyword.strip()) < 2:
        err_console.print("[red]Keyword must be at least 2 characters[/red]")
        raise typer.Exit(2)

    _list(
        ctx.obj,
        DataKind.BID_NOTICE,
        page_no,
        num_of_rows,
        from_date,
        to_date,
        keyword=keyword,
        institution=institution,
        method=method,
    )


@app.command("contracts")
def list_contracts(
    ctx: typer.Context,
    keyword: Optional[str] = typer.Option(None, "--keyword", "-k", help="Match contract name"),
    institution: Optional[str] = typer.Option(None, "--institution", "-i", help="Demand agency name"),
    page_no: int = typer.Option(1, "--page-no", "-p", help="Page number"),
    num_of_rows: int = typer.Option(10, "--num-of-rows", "-n", help="Rows per page (1-100)", min=1, max=100),
    from_date: Optional[str] = typer.Option(None, "--from", help="Start date (YYYYMMDD)"),
    to_date: Optional[str] = typer.Option(None, "--to", help="End date (YYYYMMDD)"),
) -> None:
    """List contracts."""
    _list(
        ctx.obj,
        DataKind.CONTRACT,
        page_no,
        num_of_rows,
        from_date,
        to_date,
        keyword=keyword,
        institution=institution,
    )
