"""Rich console formatting utilities.

Provides consistent formatting for CLI output using Rich, and the
human-readable byte formatter shared by the CLI and the operation log.
"""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from molectl.core.paths import contract_home
from molectl.core.theme import get_theme

if TYPE_CHECKING:
    from molectl.models.items import DiscoveredItem

_SIZE_UNITS: tuple[str, ...] = ("B", "KB", "MB", "GB", "TB", "PB")


def format_size(size: int) -> str:
    """Format a byte count for humans.

    Units step by 1024. Whole bytes are shown as integers; larger units get
    two decimals below 10, one below 100 and none from 100 upwards.

    Examples:
        >>> format_size(512)
        '512 B'
        >>> format_size(1536)
        '1.50 KB'
        >>> format_size(50 * 1024 * 1024)
        '50.0 MB'
    """
    if size <= 0:
        return "0 B"

    value = float(size)
    unit = 0
    while value >= 1024 and unit < len(_SIZE_UNITS) - 1:
        value /= 1024
        unit += 1

    if unit == 0:
        return f"{size} B"
    if value >= 100:
        return f"{value:.0f} {_SIZE_UNITS[unit]}"
    if value >= 10:
        return f"{value:.1f} {_SIZE_UNITS[unit]}"
    return f"{value:.2f} {_SIZE_UNITS[unit]}"


def _detect_color_system() -> str | None:
    """Use truecolor on interactive terminals, let Rich decide otherwise."""
    if sys.stdout.isatty():
        return "truecolor"
    return None


# Shared console instances (theme loaded once at import)
console = Console(theme=get_theme(), color_system=_detect_color_system())
err_console = Console(theme=get_theme(), stderr=True, color_system=_detect_color_system())


def create_items_table(title: str) -> Table:
    """Create a pre-configured table for discovered items.

    Args:
        title: Table title.

    Returns:
        Rich Table with selection, name, size, risk and path columns.
    """
    table = Table(
        title=title,
        show_header=True,
        header_style="bold_header",
        border_style="border",
        row_styles=["", "on grey7"],
    )
    table.add_column("", width=2, justify="center")
    table.add_column("Item", no_wrap=True, style="text")
    table.add_column("Size", style="size", justify="right")
    table.add_column("Risk", justify="center")
    table.add_column("Path", style="path", overflow="ellipsis")
    return table


def format_item_row(item: DiscoveredItem) -> tuple[str, str, str, str, str]:
    """Format a discovered item as a table row.

    Selected items get a filled circle, deselected ones an empty circle.
    Items needing admin rights are flagged next to their name.
    """
    icon = "[success]●[/]" if item.selected else "[muted]○[/]"
    name = escape(item.display_name or item.name)
    if item.subtitle:
        name = f"{name} [muted]({escape(item.subtitle)})[/]"
    if item.requires_admin:
        name = f"{name} [warning]admin[/]"
    risk = item.risk_level.value
    return (
        icon,
        name,
        format_size(item.size),
        f"[risk_{risk}]{risk}[/]",
        escape(contract_home(item.path)),
    )


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[info]{message}[/]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    err_console.print(f"[warning]Warning:[/] {message}")


def print_error(message: str) -> None:
    """Print an error message."""
    err_console.print(f"[error]Error:[/] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[success]{message}[/]")
