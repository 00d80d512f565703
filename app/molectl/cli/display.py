"""Shared Rich display functions for scan and clean results."""

from rich.markup import escape
from rich.table import Table

from molectl.models.items import CategoryResult, DiscoveredItem
from molectl.models.outcome import DeletionOutcome
from molectl.utils.formatting import (
    console,
    create_items_table,
    format_item_row,
    format_size,
    print_success,
    print_warning,
)


def print_items(title: str, items: list[DiscoveredItem], limit: int | None = None) -> None:
    """Print items as a table, optionally truncated."""
    table = create_items_table(title)
    shown = items[:limit] if limit else items
    for item in shown:
        table.add_row(*format_item_row(item))
    console.print(table)
    if limit and len(shown) < len(items):
        console.print(f"[muted](showing {len(shown)} of {len(items)})[/muted]")


def create_summary_table(results: list[CategoryResult]) -> Table:
    """Table with one row per category: items, total and selected size."""
    table = Table(
        title="Reclaimable Space",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Category", no_wrap=True)
    table.add_column("Risk", justify="center")
    table.add_column("Items", justify="right")
    table.add_column("Size", style="size", justify="right")
    table.add_column("Selected", style="size", justify="right")

    for result in results:
        risk = result.category.risk_level.value
        table.add_row(
            result.category.label,
            f"[risk_{risk}]{risk}[/]",
            str(len(result.items)),
            format_size(result.total_size),
            format_size(result.selected_size),
        )
    return table


def print_outcome(outcome: DeletionOutcome, dry_run: bool = False) -> None:
    """Print the aggregated result of a clean."""
    verb = "Would free" if dry_run else "Freed"
    noun = "item" if outcome.deleted_count == 1 else "items"
    print_success(f"{verb} {format_size(outcome.deleted_bytes)} ({outcome.deleted_count} {noun})")

    if outcome.skipped_running:
        console.print(
            f"[muted]Skipped {outcome.skipped_running_count} item(s) whose application is running[/muted]"
        )
        for path in outcome.skipped_running:
            console.print(f"  [muted]{escape(path)}[/muted]")

    for error in outcome.errors:
        print_warning(escape(f"{error.kind.value}: {error.message}"))
