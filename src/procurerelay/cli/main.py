"""
ProcureRelay CLI - Main entry point.

Operator surface over the relay: run relays, test the webhook, and query
the upstream procurement API.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.traceback import install as install_rich_traceback

from procurerelay import __app_name__, __version__
from procurerelay.core.config.loader import load_app_config
from procurerelay.core.errors import ConfigurationError
from procurerelay.core.logging import setup_logging

# Load environment variables from .env (if present)
load_dotenv()

install_rich_traceback(show_locals=False, width=120)

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    name=__app_name__,
    help="Procurement open-data relay",
    rich_markup_mode="rich",
    no_args_is_help=True,
    pretty_exceptions_show_locals=False,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold cyan]{__app_name__}[/bold cyan] version [green]{__version__}[/green]")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to app.yaml (default: configs/app.yaml if present)",
    ),
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        "-l",
        help="Override log level (DEBUG, INFO, WARNING, ERROR)",
    ),
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """ProcureRelay - relay procurement data to a webhook."""
    try:
        app_config = load_app_config(config)
    except ConfigurationError as e:
        err_console.print(f"[red]Configuration error:[/red] {e}")
        if e.details:
            err_console.print(f"[dim]{e.details}[/dim]")
        raise typer.Exit(2)

    log_config = app_config.logging
    setup_logging(
        level=log_level or log_config.level,
        log_file=log_config.file,
        json_format=log_config.json_format,
        rich_console=log_config.rich_console,
    )

    ctx.obj = app_config


# =============================================================================
# Import and register subcommand modules
# =============================================================================

from .commands import relay, upstream  # noqa: E402

app.add_typer(relay.app, name="relay", help="Relay procurement data to the webhook")
app.add_typer(upstream.app, name="upstream", help="Query the upstream procurement API")


# =============================================================================
# Entry Point
# =============================================================================


def run() -> None:
    """Run the CLI application."""
    app()


if __name__ == "__main__":
    run()
