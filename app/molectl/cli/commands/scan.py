"""Scan command implementation.

Measures the well-known cache and log locations of the catalog and
reports reclaimable space per category.
"""

import json
from typing import Annotated, Any

import typer
from rich.markup import escape

from molectl.cli.display import create_summary_table, print_items
from molectl.cli.types import (
    OutputFormat,
    build_engine,
    parse_categories,
    progress_bar,
    require_config,
    require_policy,
    run_cancellable,
)
from molectl.core.config import ConfigError, MolectlConfig
from molectl.models.items import CategoryResult
from molectl.policy import ProtectionPolicy
from molectl.scanning import CacheScanner, ScanCancelledError, load_targets
from molectl.utils.formatting import console, format_size, print_error, print_info, print_warning

app = typer.Typer(
    help="Scan caches, logs and other reclaimable locations.",
    invoke_without_command=True,
)


def results_to_json(results: list[CategoryResult]) -> list[dict[str, Any]]:
    """Serializable form of scan results."""
    return [
        {
            "category": result.category.value,
            "label": result.category.label,
            "risk": result.category.risk_level.value,
            "total_size": result.total_size,
            "items": [
                {
                    "path": str(item.path),
                    "name": item.name,
                    "size": item.size,
                    "requires_admin": item.requires_admin,
                    "last_modified": item.last_modified.isoformat() if item.last_modified else None,
                }
                for item in result.items
            ],
        }
        for result in results
    ]


def scan_catalog(
    config: MolectlConfig,
    policy: ProtectionPolicy,
    categories: list[str] | None,
    *,
    show_progress: bool,
) -> list[CategoryResult]:
    """Run a catalog scan for the CLI, exiting on failure or cancellation."""
    wanted = parse_categories(categories)

    try:
        targets = load_targets(categories=wanted)
    except ConfigError as e:
        print_error(escape(str(e)))
        raise typer.Exit(code=1) from e

    scanner = CacheScanner(build_engine(config), policy)
    try:
        with progress_bar("Scanning...", enabled=show_progress) as progress:
            return run_cancellable(scanner.scan(targets, progress), scanner.engine.cancel)
    except ScanCancelledError as e:
        print_warning("Scan cancelled.")
        raise typer.Exit(code=1) from e


@app.callback(invoke_without_command=True)
def scan_locations(
    category: Annotated[
        list[str] | None,
        typer.Option("--category", "-c", help="Only scan this category (repeatable)."),
    ] = None,
    output_format: Annotated[
        OutputFormat,
        typer.Option("--format", "-f", help="Output format.", case_sensitive=False),
    ] = OutputFormat.TABLE,
    limit: Annotated[
        int | None,
        typer.Option("--limit", "-l", help="Items shown per category."),
    ] = None,
) -> None:
    """Scan for reclaimable space without changing anything."""
    results = scan_catalog(
        require_config(),
        require_policy(),
        category,
        show_progress=output_format == OutputFormat.TABLE,
    )

    if output_format == OutputFormat.JSON:
        console.print_json(json.dumps(results_to_json(results)))
        return

    if not results:
        print_info("Nothing to clean.")
        return

    for result in results:
        print_items(f"{result.category.label} ({format_size(result.total_size)})", result.items, limit)
    console.print(create_summary_table(results))

    total = sum(result.total_size for result in results)
    console.print(f"\n[muted]Total reclaimable: {format_size(total)}[/muted]")
