"""Orphaned application data commands.

Finds data and auto-start services left behind by applications that are
no longer installed, and removes it through the deletion orchestrator.
"""

import asyncio
import json
from typing import Annotated

import typer

from molectl.cli.display import print_items, print_outcome
from molectl.cli.types import (
    OutputFormat,
    build_correlator,
    build_engine,
    build_orchestrator,
    progress_bar,
    require_config,
    require_policy,
    run_cancellable,
)
from molectl.core.config import MolectlConfig
from molectl.models.items import DiscoveredItem
from molectl.policy import ProtectionPolicy
from molectl.scanning import ScanCancelledError
from molectl.utils.formatting import console, format_size, print_info, print_success, print_warning

app = typer.Typer(
    help="Find and remove data of uninstalled applications.",
    no_args_is_help=True,
)

DaysOption = Annotated[
    int | None,
    typer.Option("--days", "-d", min=0, help="Inactivity threshold in days (default from config)."),
]
ServicesOption = Annotated[
    bool,
    typer.Option("--services", help="Also check launch agents and autostart entries."),
]


def find_orphans(
    config: MolectlConfig,
    policy: ProtectionPolicy,
    *,
    days: int | None,
    services: bool,
    show_progress: bool,
) -> list[DiscoveredItem]:
    """Run the orphan scan for the CLI, exiting if it is cancelled."""
    correlator = build_correlator(config, policy, build_engine(config), inactivity_days=days)

    async def run() -> list[DiscoveredItem]:
        known = await correlator.known_identifiers()
        with progress_bar("Checking for orphans...", enabled=show_progress) as progress:
            items = await correlator.scan(progress, known=known)
        if services:
            seen = {item.path for item in items}
            items.extend(item for item in await correlator.scan_services(known=known) if item.path not in seen)
            items.sort(key=lambda item: item.size, reverse=True)
        return items

    try:
        return run_cancellable(run(), correlator.cancel)
    except ScanCancelledError as e:
        print_warning("Orphan scan cancelled.")
        raise typer.Exit(code=1) from e


@app.command()
def scan(
    days: DaysOption = None,
    services: ServicesOption = False,
    output_format: Annotated[
        OutputFormat,
        typer.Option("--format", "-f", help="Output format.", case_sensitive=False),
    ] = OutputFormat.TABLE,
) -> None:
    """List orphaned application data."""
    config = require_config()
    items = find_orphans(
        config,
        require_policy(),
        days=days,
        services=services,
        show_progress=output_format == OutputFormat.TABLE,
    )

    if output_format == OutputFormat.JSON:
        data = [
            {
                "path": str(item.path),
                "identifier": item.name,
                "app": item.display_name,
                "location": item.subtitle,
                "size": item.size,
                "requires_admin": item.requires_admin,
            }
            for item in items
        ]
        console.print_json(json.dumps(data))
        return

    if not items:
        print_success("No orphaned application data found.")
        return

    print_items("Orphaned Application Data", items)
    total = sum(item.size for item in items)
    console.print(f"\n[muted]Found {len(items)} orphaned entries ({format_size(total)} total)[/muted]")


@app.command()
def clean(
    days: DaysOption = None,
    services: ServicesOption = False,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Run all checks but delete nothing."),
    ] = False,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt."),
    ] = False,
) -> None:
    """Remove orphaned application data."""
    config = require_config()
    policy = require_policy()
    items = find_orphans(config, policy, days=days, services=services, show_progress=True)

    if not items:
        print_success("No orphaned application data found.")
        return

    print_items("Orphaned Application Data", items)
    total = sum(item.size for item in items)

    if not dry_run and not yes:
        confirmed = typer.confirm(f"\nRemove {len(items)} entries ({format_size(total)})?", default=False)
        if not confirmed:
            print_info("Aborted.")
            raise typer.Exit(code=0)

    orchestrator = build_orchestrator(config, policy)
    outcome = asyncio.run(orchestrator.clean(items, dry_run=dry_run))
    print_outcome(outcome, dry_run=dry_run)

    if outcome.had_errors:
        raise typer.Exit(code=1)
