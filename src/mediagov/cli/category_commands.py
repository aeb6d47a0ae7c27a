"""
Tag category CLI commands for mediagov.

Commands for the shared tag vocabularies that Select and MultiSelect fields
can take their options from.
"""

from __future__ import annotations

import asyncio
import uuid
from typing import List, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from mediagov.cli.errors import exit_with_error
from mediagov.container import container
from mediagov.exceptions import MediaGovError, NotFoundError
from mediagov.models.tag_category import TagCategory
from mediagov.services.governance import MediaGovernanceService
from mediagov.services.tag_normalization import comparison_key

console = Console()

category_app = typer.Typer(
    name="categories",
    help="Tag categories (shared option lists)",
    no_args_is_help=True,
)


def _service() -> MediaGovernanceService:
    return container.create_governance_service()


async def resolve_category(
    service: MediaGovernanceService, identifier: str
) -> TagCategory:
    """
    Resolve a category identifier (UUID or name) to a category.

    Names are matched case-insensitively, inactive categories included.
    """
    try:
        return await service.get_category(uuid.UUID(identifier))
    except ValueError:
        pass
    key = comparison_key(identifier)
    for category in await service.list_categories(include_inactive=True):
        if comparison_key(category.name) == key:
            return category
    raise NotFoundError("TagCategory", identifier)


def _print_category(category: TagCategory) -> None:
    state = "[green]active[/green]" if category.is_active else "[dim]inactive[/dim]"
    tags = ", ".join(category.tag_names) or "[dim]no tags[/dim]"
    body = f"[bold]ID:[/bold] {category.id}\n[bold]State:[/bold] {state}\n"
    if category.description:
        body += f"[bold]Description:[/bold] {category.description}\n"
    body += f"[bold]Tags:[/bold] {tags}"
    console.print(Panel(body, title=category.name, border_style="blue"))


@category_app.command("list")
def list_categories(
    include_inactive: bool = typer.Option(
        False, "--include-inactive", "-i", help="Also show soft-deleted categories"
    ),
) -> None:
    """List tag categories."""

    async def run_list() -> None:
        try:
            categories = await _service().list_categories(
                include_inactive=include_inactive
            )
        except MediaGovError as e:
            exit_with_error(e)
            return

        if not categories:
            console.print(
                Panel(
                    "[yellow]No tag categories found[/yellow]\n"
                    "Use 'mediagov categories create NAME' to add one",
                    title="No Categories",
                    border_style="yellow",
                )
            )
            return

        category_table = Table(
            title=f"Tag Categories ({len(categories)} total)",
            show_header=True,
            header_style="bold blue",
        )
        category_table.add_column("Name", style="cyan")
        category_table.add_column("Tags", style="yellow", justify="right")
        category_table.add_column("Active", style="green")
        category_table.add_column("ID", style="dim")
        for category in categories:
            category_table.add_row(
                category.name,
                str(len(category.tags)),
                "Yes" if category.is_active else "No",
                str(category.id),
            )
        console.print(category_table)

    asyncio.run(run_list())


@category_app.command("show")
def show_category(
    identifier: str = typer.Argument(..., help="Category name or UUID"),
) -> None:
    """Show a tag category and its tags."""

    async def run_show() -> None:
        try:
            category = await resolve_category(_service(), identifier)
        except MediaGovError as e:
            exit_with_error(e)
            return
        _print_category(category)

    asyncio.run(run_show())


@category_app.command("create")
def create_category(
    name: str = typer.Argument(..., help="Category name"),
    tags: Optional[List[str]] = typer.Option(
        None, "--tag", "-t", help="Initial tag (repeatable)"
    ),
    description: Optional[str] = typer.Option(
        None, "--description", "-d", help="Category description"
    ),
) -> None:
    """Create a tag category (reactivates a soft-deleted one of the same name)."""

    async def run_create() -> None:
        try:
            category = await _service().create_category(
                {"name": name, "description": description, "tags": tags or []}
            )
        except MediaGovError as e:
            exit_with_error(e)
            return
        console.print(f"[green]Saved tag category '{category.name}'[/green]")
        _print_category(category)

    asyncio.run(run_create())


@category_app.command("add-tag")
def add_tag(
    identifier: str = typer.Argument(..., help="Category name or UUID"),
    tag: str = typer.Argument(..., help="Tag to add"),
) -> None:
    """Add a tag to a category."""

    async def run_add() -> None:
        service = _service()
        try:
            category = await resolve_category(service, identifier)
            category = await service.add_tag_to_category(category.id, tag)
        except MediaGovError as e:
            exit_with_error(e)
            return
        console.print(f"[green]Added '{tag.strip()}' to '{category.name}'[/green]")

    asyncio.run(run_add())


@category_app.command("remove-tag")
def remove_tag(
    identifier: str = typer.Argument(..., help="Category name or UUID"),
    tag: str = typer.Argument(..., help="Tag to remove"),
) -> None:
    """Remove a tag from a category."""

    async def run_remove() -> None:
        service = _service()
        try:
            category = await resolve_category(service, identifier)
            key = comparison_key(tag)
            member = next(
                (t for t in category.tags if comparison_key(t.name) == key), None
            )
            if member is None:
                raise NotFoundError(
                    "Tag", tag, hint=f"It is not a member of '{category.name}'"
                )
            category = await service.remove_tag_from_category(category.id, member.id)
        except MediaGovError as e:
            exit_with_error(e)
            return
        console.print(f"[green]Removed '{member.name}' from '{category.name}'[/green]")

    asyncio.run(run_remove())


@category_app.command("delete")
def delete_category(
    identifier: str = typer.Argument(..., help="Category name or UUID"),
    hard: bool = typer.Option(
        False, "--hard", help="Remove the category instead of deactivating it"
    ),
    cascade: bool = typer.Option(
        False,
        "--cascade",
        help="With --hard, convert referencing fields to static option lists",
    ),
) -> None:
    """Soft-delete (default) or hard-delete a tag category."""

    async def run_delete() -> None:
        service = _service()
        try:
            category = await resolve_category(service, identifier)
            result = await service.delete_category(
                category.id, hard_delete=hard, cascade=cascade
            )
        except MediaGovError as e:
            exit_with_error(e)
            return

        if not result.hard_delete:
            console.print(f"[green]Deactivated tag category '{category.name}'[/green]")
            return
        console.print(f"[green]Deleted tag category '{category.name}'[/green]")
        if result.converted_media_type_ids:
            console.print(
                f"[yellow]Converted fields of {len(result.converted_media_type_ids)} "
                "media type(s) to static options[/yellow]"
            )

    asyncio.run(run_delete())
