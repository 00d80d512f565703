"""Project build artifact purge command.

Finds node_modules, target, .venv and similar directories below a
projects folder and moves them to the trash.
"""

import asyncio
from pathlib import Path
from typing import Annotated

import typer
from rich.markup import escape

from molectl.cli.display import print_items, print_outcome
from molectl.cli.types import (
    build_engine,
    build_orchestrator,
    progress_bar,
    require_config,
    require_policy,
    run_cancellable,
)
from molectl.scanning import ArtifactScanner, InvalidPathError, ScanCancelledError
from molectl.utils.formatting import console, format_size, print_error, print_info, print_success, print_warning

app = typer.Typer(
    help="Remove build artifacts from project folders.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def purge_artifacts(
    path: Annotated[
        Path,
        typer.Argument(help="Folder containing projects."),
    ] = Path("."),
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Run all checks but delete nothing."),
    ] = False,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt."),
    ] = False,
    include_recent: Annotated[
        bool,
        typer.Option("--include-recent", help="Also purge artifacts modified in the last week."),
    ] = False,
) -> None:
    """Find and purge project build artifacts below PATH."""
    config = require_config()
    policy = require_policy()
    engine = build_engine(config)
    scanner = ArtifactScanner(engine)
    root = path.expanduser().resolve()

    try:
        with progress_bar("Searching for artifacts...") as progress:
            items = run_cancellable(scanner.scan(root, progress), engine.cancel)
    except InvalidPathError as e:
        print_error(f"Not a directory: {escape(str(path))}")
        raise typer.Exit(code=1) from e
    except ScanCancelledError as e:
        print_warning("Artifact scan cancelled.")
        raise typer.Exit(code=1) from e

    if include_recent:
        items = [item.with_selected(True) for item in items]

    if not items:
        print_success("No build artifacts found.")
        return

    print_items("Project Artifacts", items)
    selected = [item for item in items if item.selected]
    if not selected:
        print_info("All artifacts were modified recently; use --include-recent to purge them.")
        return

    total = sum(item.size for item in selected)
    console.print(f"\n[muted]{len(selected)} selected ({format_size(total)})[/muted]")

    if not dry_run and not yes:
        confirmed = typer.confirm(f"\nMove {format_size(total)} to the trash?", default=False)
        if not confirmed:
            print_info("Aborted.")
            raise typer.Exit(code=0)

    orchestrator = build_orchestrator(config, policy)
    outcome = asyncio.run(orchestrator.clean(selected, dry_run=dry_run, skip_running=False))
    print_outcome(outcome, dry_run=dry_run)

    if outcome.had_errors:
        raise typer.Exit(code=1)
