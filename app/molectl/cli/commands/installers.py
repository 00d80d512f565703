"""Leftover installer commands.

Finds disk images, packages and installer archives in the download,
desktop and document folders and moves them to the trash.
"""

import asyncio
import json
from typing import Annotated

import typer

from molectl.cli.display import print_items, print_outcome
from molectl.cli.types import (
    OutputFormat,
    build_engine,
    build_orchestrator,
    progress_bar,
    require_config,
    require_policy,
    run_cancellable,
)
from molectl.core.config import MolectlConfig
from molectl.models.items import DiscoveredItem
from molectl.scanning import InstallerScanner, ScanCancelledError
from molectl.utils.formatting import console, format_size, print_info, print_success, print_warning

app = typer.Typer(
    help="Find and remove leftover installer files.",
    no_args_is_help=True,
)


def find_installers(config: MolectlConfig, *, show_progress: bool) -> list[DiscoveredItem]:
    """Run the installer scan for the CLI, exiting if it is cancelled."""
    engine = build_engine(config)
    scanner = InstallerScanner(engine)
    try:
        with progress_bar("Searching for installers...", enabled=show_progress) as progress:
            return run_cancellable(scanner.scan(progress), engine.cancel)
    except ScanCancelledError as e:
        print_warning("Installer scan cancelled.")
        raise typer.Exit(code=1) from e


@app.command()
def scan(
    output_format: Annotated[
        OutputFormat,
        typer.Option("--format", "-f", help="Output format.", case_sensitive=False),
    ] = OutputFormat.TABLE,
) -> None:
    """List leftover installer files."""
    items = find_installers(require_config(), show_progress=output_format == OutputFormat.TABLE)

    if output_format == OutputFormat.JSON:
        data = [
            {
                "path": str(item.path),
                "name": item.name,
                "location": item.subtitle,
                "size": item.size,
            }
            for item in items
        ]
        console.print_json(json.dumps(data))
        return

    if not items:
        print_success("No installer files found.")
        return

    print_items("Installer Files", items)
    total = sum(item.size for item in items)
    console.print(f"\n[muted]Found {len(items)} installers ({format_size(total)} total)[/muted]")


@app.command()
def clean(
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Run all checks but delete nothing."),
    ] = False,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt."),
    ] = False,
) -> None:
    """Move leftover installer files to the trash."""
    config = require_config()
    policy = require_policy()
    items = find_installers(config, show_progress=True)

    if not items:
        print_success("No installer files found.")
        return

    print_items("Installer Files", items)
    total = sum(item.size for item in items)

    if not dry_run and not yes:
        confirmed = typer.confirm(f"\nMove {len(items)} installers ({format_size(total)}) to the trash?", default=False)
        if not confirmed:
            print_info("Aborted.")
            raise typer.Exit(code=0)

    orchestrator = build_orchestrator(config, policy)
    outcome = asyncio.run(orchestrator.clean(items, dry_run=dry_run, skip_running=False))
    print_outcome(outcome, dry_run=dry_run)

    if outcome.had_errors:
        raise typer.Exit(code=1)
