"""Clean command implementation.

Scans the catalog and removes the selected items through the deletion
orchestrator: trash for ordinary items, elevated batches for
admin-required ones.
"""

import asyncio
from typing import Annotated

import typer

from molectl.cli.commands.scan import scan_catalog
from molectl.cli.display import create_summary_table, print_outcome
from molectl.cli.types import build_orchestrator, require_config, require_policy
from molectl.utils.formatting import console, format_size, print_info

app = typer.Typer(
    help="Remove reclaimable data (moved to the trash).",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def clean_locations(
    category: Annotated[
        list[str] | None,
        typer.Option("--category", "-c", help="Only clean this category (repeatable)."),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Run all checks but delete nothing."),
    ] = False,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt."),
    ] = False,
    include_admin: Annotated[
        bool,
        typer.Option("--include-admin", help="Also remove items that need administrator rights."),
    ] = False,
    skip_running: Annotated[
        bool | None,
        typer.Option(
            "--skip-running/--no-skip-running",
            help="Skip items whose application is running (default from config).",
        ),
    ] = None,
) -> None:
    """Clean caches, logs and other reclaimable locations."""
    config = require_config()
    policy = require_policy()
    results = scan_catalog(config, policy, category, show_progress=True)

    if not include_admin:
        for result in results:
            for item in result.items:
                if item.requires_admin:
                    result.set_selected(item.path, False)

    results = [result for result in results if result.selected_items]
    if not results:
        print_info("Nothing to clean.")
        return

    console.print(create_summary_table(results))
    selected = sum(result.selected_size for result in results)

    if not dry_run and not yes:
        confirmed = typer.confirm(f"\nMove {format_size(selected)} to the trash?", default=False)
        if not confirmed:
            print_info("Aborted.")
            raise typer.Exit(code=0)

    orchestrator = build_orchestrator(config, policy)
    outcome = asyncio.run(
        orchestrator.clean_categories(results, dry_run=dry_run, skip_running=skip_running)
    )
    print_outcome(outcome, dry_run=dry_run)

    if outcome.had_errors:
        raise typer.Exit(code=1)
