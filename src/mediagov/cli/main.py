"""
Main CLI entry point for mediagov.
"""

from __future__ import annotations

import asyncio
import logging

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel

from mediagov import __version__
from mediagov.cli.category_commands import category_app
from mediagov.cli.type_commands import type_app
from mediagov.config.database import db_manager
from mediagov.config.settings import settings

console = Console()

app = typer.Typer(
    name="mediagov",
    help="Media-type schema and tag governance",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# Add subcommands
app.add_typer(type_app, name="types", help="Media type commands")
app.add_typer(category_app, name="categories", help="Tag category commands")


def configure_logging(verbose: bool = False) -> None:
    """Route the ``mediagov`` loggers through a Rich console handler."""
    log_level = logging.DEBUG if verbose else getattr(logging, settings.log_level)

    package_logger = logging.getLogger("mediagov")
    for handler in list(package_logger.handlers):
        if isinstance(handler, RichHandler):
            package_logger.removeHandler(handler)

    handler = RichHandler(console=Console(stderr=True), show_path=False)
    handler.setLevel(log_level)
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="%Y-%m-%d %H:%M:%S"))
    package_logger.addHandler(handler)
    package_logger.setLevel(log_level)


@app.command()
def version() -> None:
    """Show version information."""
    console.print(
        Panel(
            f"[bold blue]mediagov[/bold blue] v{__version__}",
            title="Version",
            border_style="blue",
        )
    )


@app.command("init-db")
def init_db() -> None:
    """Create the database tables (development databases; use Alembic otherwise)."""

    async def run_init() -> None:
        await db_manager.create_tables()
        await db_manager.close()

    asyncio.run(run_init())
    console.print("[green]Database tables created[/green]")


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", "-v", help="Show version and exit"
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging"),
) -> None:
    """
    mediagov - Media-type schema and tag governance.

    Define custom media types, manage their lifecycle, migrate records
    between them, and keep tags consistent.
    """
    if version:
        console.print(f"mediagov v{__version__}")
        raise typer.Exit(code=0)

    configure_logging(verbose)

    if ctx.invoked_subcommand is None:
        console.print("[yellow]Use 'mediagov --help' for available commands[/yellow]")
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
