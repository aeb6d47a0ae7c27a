"""
Media type CLI commands for mediagov.

Commands for managing media types: defining them from JSON files, following
their lifecycle, migrating records between them, and applying default tags.
"""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from pathlib import Path
from typing import Any, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from mediagov.cli.errors import exit_with_error
from mediagov.container import container
from mediagov.exceptions import MediaGovError, ValidationError
from mediagov.models.media_type import MediaType
from mediagov.services.governance import MediaGovernanceService

logger = logging.getLogger(__name__)

console = Console()

type_app = typer.Typer(
    name="types",
    help="Media type definitions, lifecycle and migrations",
    no_args_is_help=True,
)

_STATUS_STYLES = {"active": "green", "deprecated": "yellow", "archived": "dim"}


def _service() -> MediaGovernanceService:
    return container.create_governance_service()


def _load_json(path: Path) -> dict[str, Any]:
    """Read a JSON object from *path*."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ValidationError(
            f"Cannot read JSON from {path}: {e}", invalid_value=str(path)
        ) from e
    if not isinstance(data, dict):
        raise ValidationError(
            f"{path} must contain a JSON object", invalid_value=str(path)
        )
    return data


async def resolve_media_type(
    service: MediaGovernanceService, identifier: str
) -> MediaType:
    """
    Resolve a media type identifier (UUID or name) to a media type.

    Names are matched case-insensitively.
    """
    try:
        media_type_id = uuid.UUID(identifier)
    except ValueError:
        return await service.get_type_by_name(identifier)
    return await service.get_type(media_type_id)


def _status_text(status: str) -> str:
    style = _STATUS_STYLES.get(status, "white")
    return f"[{style}]{status}[/{style}]"


def _print_media_type(media_type: MediaType) -> None:
    lines = [
        f"[bold]ID:[/bold] {media_type.id}",
        f"[bold]Base type:[/bold] {media_type.base_type.value}",
        f"[bold]Status:[/bold] {_status_text(media_type.status.value)}",
        f"[bold]Records (cached):[/bold] {media_type.usage_count:,}",
        f"[bold]Accepted files:[/bold] {', '.join(media_type.accepted_file_types)}",
        "[bold]Default tags:[/bold] "
        + (", ".join(media_type.default_tags) or "[dim]none[/dim]"),
    ]
    if media_type.replaced_by_id:
        lines.append(f"[bold]Replaced by:[/bold] {media_type.replaced_by_id}")
    console.print(
        Panel("\n".join(lines), title=media_type.name, border_style="blue")
    )

    if not media_type.fields:
        return
    field_table = Table(show_header=True, header_style="bold blue")
    field_table.add_column("Field", style="cyan")
    field_table.add_column("Kind", style="white")
    field_table.add_column("Required", style="yellow")
    field_table.add_column("Options", style="green")
    for field in media_type.fields:
        options = media_type.resolved_options.get(field.name)
        field_table.add_row(
            field.name,
            field.kind,
            "Yes" if field.required else "No",
            ", ".join(options) if options is not None else "-",
        )
    console.print(field_table)


@type_app.command("list")
def list_types(
    exclude_archived: bool = typer.Option(
        False, "--exclude-archived", "-x", help="Hide archived media types"
    ),
) -> None:
    """List media types."""

    async def run_list() -> None:
        try:
            media_types = await _service().list_types(
                include_archived=not exclude_archived
            )
        except MediaGovError as e:
            exit_with_error(e)
            return

        if not media_types:
            console.print(
                Panel(
                    "[yellow]No media types defined[/yellow]\n"
                    "Use 'mediagov types create FILE' to define one",
                    title="No Media Types",
                    border_style="yellow",
                )
            )
            return

        type_table = Table(
            title=f"Media Types ({len(media_types)} total)",
            show_header=True,
            header_style="bold blue",
        )
        type_table.add_column("Name", style="cyan")
        type_table.add_column("Base", style="white")
        type_table.add_column("Status")
        type_table.add_column("Fields", style="white", justify="right")
        type_table.add_column("Records", style="yellow", justify="right")
        type_table.add_column("ID", style="dim")
        for media_type in media_types:
            type_table.add_row(
                media_type.name,
                media_type.base_type.value,
                _status_text(media_type.status.value),
                str(len(media_type.fields)),
                f"{media_type.usage_count:,}",
                str(media_type.id),
            )
        console.print(type_table)

    asyncio.run(run_list())


@type_app.command("show")
def show_type(
    identifier: str = typer.Argument(..., help="Media type name or UUID"),
) -> None:
    """Show a media type with its fields and resolved options."""

    async def run_show() -> None:
        try:
            media_type = await resolve_media_type(_service(), identifier)
        except MediaGovError as e:
            exit_with_error(e)
            return
        _print_media_type(media_type)

    asyncio.run(run_show())


@type_app.command("create")
def create_type(
    definition_file: Path = typer.Argument(
        ..., help="JSON file holding the media type definition"
    ),
) -> None:
    """Create a media type from a JSON definition."""

    async def run_create() -> None:
        try:
            media_type = await _service().create_type(_load_json(definition_file))
        except MediaGovError as e:
            exit_with_error(e)
            return
        console.print(f"[green]Created media type '{media_type.name}'[/green]")
        _print_media_type(media_type)

    asyncio.run(run_create())


@type_app.command("update")
def update_type(
    identifier: str = typer.Argument(..., help="Media type name or UUID"),
    changes_file: Path = typer.Argument(
        ..., help="JSON file holding the changed properties"
    ),
) -> None:
    """Apply a partial update to a media type."""

    async def run_update() -> None:
        service = _service()
        try:
            media_type = await resolve_media_type(service, identifier)
            media_type = await service.update_type(
                media_type.id, _load_json(changes_file)
            )
        except MediaGovError as e:
            exit_with_error(e)
            return
        console.print(f"[green]Updated media type '{media_type.name}'[/green]")
        _print_media_type(media_type)

    asyncio.run(run_update())


@type_app.command("usage")
def show_usage(
    identifier: str = typer.Argument(..., help="Media type name or UUID"),
) -> None:
    """Count the records currently using a media type."""

    async def run_usage() -> None:
        service = _service()
        try:
            media_type = await resolve_media_type(service, identifier)
            count = await service.get_usage(media_type.id)
        except MediaGovError as e:
            exit_with_error(e)
            return
        console.print(
            f"[cyan]{media_type.name}[/cyan] is used by "
            f"[bold]{count:,}[/bold] record(s)"
        )

    asyncio.run(run_usage())


@type_app.command("archive")
def archive_type(
    identifier: str = typer.Argument(..., help="Media type name or UUID"),
) -> None:
    """Archive a media type. Archived types accept no new records."""

    async def run_archive() -> None:
        service = _service()
        try:
            media_type = await resolve_media_type(service, identifier)
            media_type = await service.archive_type(media_type.id)
        except MediaGovError as e:
            exit_with_error(e)
            return
        console.print(f"[green]Archived media type '{media_type.name}'[/green]")

    asyncio.run(run_archive())


@type_app.command("delete")
def delete_type(
    identifier: str = typer.Argument(..., help="Media type name or UUID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Delete a media type that no record uses."""

    async def run_delete() -> None:
        service = _service()
        try:
            media_type = await resolve_media_type(service, identifier)
            if not yes and not typer.confirm(
                f"Delete media type '{media_type.name}'?", default=False
            ):
                console.print("[yellow]Cancelled[/yellow]")
                return
            await service.delete_type(media_type.id)
        except MediaGovError as e:
            exit_with_error(e)
            return
        console.print(f"[green]Deleted media type '{media_type.name}'[/green]")

    asyncio.run(run_delete())


@type_app.command("migrate")
def migrate_type(
    source: str = typer.Argument(..., help="Source media type name or UUID"),
    target: str = typer.Argument(..., help="Target media type name or UUID"),
) -> None:
    """Move every record of SOURCE to TARGET and deprecate SOURCE."""

    async def run_migrate() -> None:
        service = _service()
        try:
            source_type = await resolve_media_type(service, source)
            target_type = await resolve_media_type(service, target)
            result = await service.migrate(source_type.id, target_type.id)
        except MediaGovError as e:
            exit_with_error(e)
            return

        border = "yellow" if result.failed_ids else "green"
        lines = [
            f"[bold]Migrated:[/bold] {result.migrated_count:,}",
            f"[bold]Skipped:[/bold] {result.skipped_count:,}",
            f"[bold]Failed:[/bold] {len(result.failed_ids):,}",
            f"[bold]Scanned:[/bold] {result.total_scanned:,} "
            f"in {result.batches} batch(es)",
        ]
        if result.failed_ids:
            lines.append(
                "[yellow]Re-run the migration to retry failed records[/yellow]"
            )
        console.print(
            Panel(
                "\n".join(lines),
                title=f"{source_type.name} -> {target_type.name}",
                border_style=border,
            )
        )

    asyncio.run(run_migrate())


@type_app.command("sync-tags")
def sync_tags(
    identifier: Optional[str] = typer.Argument(
        None, help="Media type name or UUID (omit with --all)"
    ),
    all_types: bool = typer.Option(
        False, "--all", "-a", help="Sync every media type with default tags"
    ),
    verify: bool = typer.Option(
        False, "--verify", help="Only count records missing default tags"
    ),
) -> None:
    """Apply default tags to the records of a media type."""
    if identifier is None and not all_types:
        console.print("[red]Give a media type or --all[/red]")
        raise typer.Exit(code=2)

    async def run_sync() -> None:
        service = _service()
        try:
            if all_types:
                results = await service.apply_all_default_tags()
                sync_table = Table(
                    title="Default Tag Sync", show_header=True, header_style="bold blue"
                )
                sync_table.add_column("Media Type ID", style="dim")
                sync_table.add_column("Updated", style="green", justify="right")
                sync_table.add_column("Records", style="white", justify="right")
                sync_table.add_column("Failed", style="red", justify="right")
                for result in results:
                    sync_table.add_row(
                        str(result.media_type_id),
                        f"{result.count:,}",
                        f"{result.total_files:,}",
                        str(len(result.failed_ids)),
                    )
                console.print(sync_table)
                return

            assert identifier is not None
            media_type = await resolve_media_type(service, identifier)
            if verify:
                missing = await service.verify_default_tags(media_type.id)
                style = "green" if missing == 0 else "yellow"
                console.print(
                    f"[{style}]{missing:,} record(s) of '{media_type.name}' "
                    f"missing default tags[/{style}]"
                )
                return

            result = await service.apply_default_tags(media_type.id)
        except MediaGovError as e:
            exit_with_error(e)
            return

        console.print(
            Panel(
                f"[bold]Updated:[/bold] {result.count:,} of {result.total_files:,}\n"
                f"[bold]Tags added:[/bold] {result.tags_applied:,}\n"
                f"[bold]Failed:[/bold] {len(result.failed_ids):,}",
                title=f"Default tags: {media_type.name}",
                border_style="yellow" if result.failed_ids else "green",
            )
        )

    asyncio.run(run_sync())


@type_app.command("needing-tags")
def needing_tags() -> None:
    """Show, per media type, how many records miss a default tag."""

    async def run_summary() -> None:
        try:
            summary = await _service().files_needing_tags_summary()
        except MediaGovError as e:
            exit_with_error(e)
            return

        if not summary:
            console.print("[yellow]No media type defines default tags[/yellow]")
            return
        summary_table = Table(
            title="Records Needing Default Tags",
            show_header=True,
            header_style="bold blue",
        )
        summary_table.add_column("Media Type", style="cyan")
        summary_table.add_column("Needing Tags", style="yellow", justify="right")
        summary_table.add_column("Records", style="white", justify="right")
        for entry in summary:
            summary_table.add_row(
                entry.name, f"{entry.count:,}", f"{entry.total_files:,}"
            )
        console.print(summary_table)

    asyncio.run(run_summary())


@type_app.command("history")
def history(
    identifier: str = typer.Argument(..., help="Media type name or UUID"),
    limit: int = typer.Option(20, "--limit", "-l", help="Maximum events to show"),
) -> None:
    """Show the audit trail of a media type."""

    async def run_history() -> None:
        service = _service()
        try:
            media_type = await resolve_media_type(service, identifier)
            events = await service.list_events(media_type.id, limit=limit)
        except MediaGovError as e:
            exit_with_error(e)
            return

        event_table = Table(
            title=f"History of {media_type.name}",
            show_header=True,
            header_style="bold blue",
        )
        event_table.add_column("When", style="dim")
        event_table.add_column("Operation", style="cyan")
        event_table.add_column("Status", style="white")
        event_table.add_column("By", style="white")
        for event in events:
            change = "-"
            if event.from_status or event.to_status:
                from_status = event.from_status.value if event.from_status else "-"
                to_status = event.to_status.value if event.to_status else "-"
                change = f"{from_status} -> {to_status}"
            event_table.add_row(
                str(event.created_at or ""),
                event.operation.value,
                change,
                event.performed_by,
            )
        console.print(event_table)

    asyncio.run(run_history())
