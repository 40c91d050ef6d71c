"""
Relay commands - push upstream data to the webhook.
"""

from __future__ import annotations

import asyncio
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from procurerelay.core.config.models import AppConfig
from procurerelay.core.errors import ConfigurationError
from procurerelay.core.models import AggregateResult, DataKind, FetchParams, RelayOutcome
from procurerelay.core.relay.service import RelayService

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    help="Relay procurement data to the webhook",
    no_args_is_help=True,
)


def build_service(config: AppConfig) -> RelayService:
    """Create the relay service, exiting with code 2 on bad configuration."""
    try:
        return RelayService.from_config(config)
    except ConfigurationError as e:
        err_console.print(f"[red]Configuration error:[/red] {e}")
        if e.details:
            err_console.print(f"[dim]{e.details}[/dim]")
        raise typer.Exit(2)


def _params(
    config: AppConfig,
    page_no: Optional[int],
    num_of_rows: Optional[int],
    from_date: Optional[str],
    to_date: Optional[str],
) -> FetchParams:
    try:
        return FetchParams(
            page_no=page_no or config.relay.default_page_no,
            num_of_rows=num_of_rows or config.relay.default_num_of_rows,
            from_date=from_date,
            to_date=to_date,
        )
    except ValueError as e:
        err_console.print(f"[red]{e}[/red]")
        raise typer.Exit(2)


def _outcome_table(outcomes: tuple[RelayOutcome, ...] | list[RelayOutcome]) -> Table:
    table = Table(title="Relay Results")

    table.add_column("Kind", style="cyan")
    table.add_column("Source")
    table.add_column("Items", justify="right")
    table.add_column("Total", justify="right")
    table.add_column("Delivered", justify="center")
    table.add_column("Duration", justify="right")

    for outcome in outcomes:
        delivered = "[green]yes[/green]" if outcome.delivered else "[red]no[/red]"
        source = outcome.source.value if outcome.source else "[red]error[/red]"
        total = str(outcome.payload.total_count) if outcome.payload else "-"
        table.add_row(
            outcome.kind.label,
            source,
            str(outcome.item_count),
            total,
            delivered,
            f"{outcome.duration_ms}ms",
        )

    return table


def _show_result(result: AggregateResult) -> None:
    console.print(_outcome_table(result.outcomes))
    console.print()
    style = "green" if result.success_count == len(DataKind) else "yellow"
    console.print(f"[{style}]{result.summary}[/{style}]")
    if not result.complete:
        console.print("[yellow]Some kinds did not finish before the deadline[/yellow]")


async def _relay_all(config: AppConfig, params: FetchParams) -> AggregateResult:
    async with build_service(config) as service:
        return await service.relay_all(params)


async def _relay_one(config: AppConfig, kind: DataKind, params: FetchParams) -> RelayOutcome:
    async with build_service(config) as service:
        return await service.dispatch(kind, params)


async def _test_webhook(config: AppConfig) -> bool:
    async with build_service(config) as service:
        return await service.test_webhook()


@app.command("all")
def relay_all(
    ctx: typer.Context,
    page_no: Optional[int] = typer.Option(None, "--page-no", "-p", help="Upstream page number"),
    num_of_rows: Optional[int] = typer.Option(None, "--num-of-rows", "-n", help="Rows per page"),
    from_date: Optional[str] = typer.Option(None, "--from", help="Start date (YYYYMMDD)"),
    to_date: Optional[str] = typer.Option(None, "--to", help="End date (YYYYMMDD)"),
) -> None:
    """Relay bid notices, pre-notices and contracts.

    Examples:
        procurerelay relay all
        procurerelay relay all --from 20250101 --to 20250131 -n 50
    """
    config: AppConfig = ctx.obj
    params = _params(config, page_no, num_of_rows, from_date, to_date)

    result = asyncio.run(_relay_all(config, params))
    _show_result(result)

    if result.success_count == 0:
        raise typer.Exit(1)


@app.command("send")
def relay_send(
    ctx: typer.Context,
    kind: str = typer.Argument(..., help="bid-notice, pre-notice or contract"),
    page_no: Optional[int] = typer.Option(None, "--page-no", "-p", help="Upstream page number"),
    num_of_rows: Optional[int] = typer.Option(None, "--num-of-rows", "-n", help="Rows per page"),
    from_date: Optional[str] = typer.Option(None, "--from", help="Start date (YYYYMMDD)"),
    to_date: Optional[str] = typer.Option(None, "--to", help="End date (YYYYMMDD)"),
) -> None:
    """Relay a single data kind."""
    config: AppConfig = ctx.obj
    try:
        data_kind = DataKind.parse(kind)
    except ValueError as e:
        err_console.print(f"[red]{e}[/red]")
        raise typer.Exit(2)

    params = _params(config, page_no, num_of_rows, from_date, to_date)
    outcome = asyncio.run(_relay_one(config, data_kind, params))

    console.print(_outcome_table([outcome]))
    if outcome.delivered:
        console.print(f"[green]{data_kind.label.capitalize()} data was delivered to the webhook[/green]")
    else:
        console.print(
            f"[yellow]{data_kind.label.capitalize()} data was processed "
            "but webhook delivery failed[/yellow]"
        )
        raise typer.Exit(1)


@app.command("test-webhook")
def test_webhook(ctx: typer.Context) -> None:
    """Send a connection-test payload to the webhook."""
    config: AppConfig = ctx.obj

    if asyncio.run(_test_webhook(config)):
        console.print("[green]Webhook connection OK[/green]")
    else:
        err_console.print("[red]Webhook connection failed[/red]")
        raise typer.Exit(1)
