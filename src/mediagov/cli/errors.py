"""
Error display helpers for CLI commands.

Maps domain exceptions to exit codes and renders them in a consistent
Rich panel:

    Title -> Problem -> Hint

Examples:
    >>> format_error("Not Found", "MediaType Photo not found")
    'Error: Not Found: MediaType Photo not found'
"""

from __future__ import annotations

from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel

from mediagov.exceptions import (
    EXIT_CODE_CONFLICT,
    EXIT_CODE_GENERAL_ERROR,
    EXIT_CODE_INVALID_ARGS,
    EXIT_CODE_LOCK_HELD,
    DuplicateNameError,
    InvalidTransitionError,
    LockAcquisitionError,
    MediaGovError,
    MediaTypeInUseError,
    NotFoundError,
    TagCategoryInUseError,
    ValidationError,
)

# Module-level console for CLI error display
console = Console()


class ErrorCategory:
    """Standard error categories for CLI commands."""

    NOT_FOUND = "Not Found"
    VALIDATION = "Validation"
    CONFLICT = "Conflict"
    LOCKED = "Locked"
    GENERAL = "Error"


def categorize(error: MediaGovError) -> tuple[str, int]:
    """
    Map a domain exception to an error category and exit code.

    Examples
    --------
    >>> categorize(NotFoundError("MediaType", "x"))
    ('Not Found', 2)
    """
    if isinstance(error, NotFoundError):
        return ErrorCategory.NOT_FOUND, EXIT_CODE_INVALID_ARGS
    if isinstance(error, ValidationError):
        return ErrorCategory.VALIDATION, EXIT_CODE_INVALID_ARGS
    if isinstance(
        error,
        (
            DuplicateNameError,
            InvalidTransitionError,
            MediaTypeInUseError,
            TagCategoryInUseError,
        ),
    ):
        return ErrorCategory.CONFLICT, EXIT_CODE_CONFLICT
    if isinstance(error, LockAcquisitionError):
        return ErrorCategory.LOCKED, EXIT_CODE_LOCK_HELD
    return ErrorCategory.GENERAL, EXIT_CODE_GENERAL_ERROR


def format_error(category: str, message: str, hint: Optional[str] = None) -> str:
    """Format an error message in the standard layout."""
    lines = [f"Error: {category}: {message}"]
    if hint is not None:
        lines.append(f"   Hint: {hint}")
    return "\n".join(lines)


def display_error_panel(
    category: str,
    message: str,
    hint: Optional[str] = None,
    title: str = "Error",
) -> None:
    """Display a formatted error in a red Rich panel."""
    console.print(
        Panel(
            f"[red]{format_error(category, message, hint)}[/red]",
            title=title,
            border_style="red",
        )
    )


def exit_with_error(error: MediaGovError) -> None:
    """
    Display *error* and exit with its mapped code.

    Raises
    ------
    typer.Exit
        Always.
    """
    category, code = categorize(error)
    hint: Optional[str] = None
    if isinstance(error, ValidationError) and len(error.errors) > 1:
        hint = "; ".join(
            f"{'.'.join(str(p) for p in entry.get('loc', ()))}: {entry.get('msg')}"
            for entry in error.errors[1:4]
        )
    display_error_panel(category, error.message, hint=hint)
    raise typer.Exit(code=code)
