"""Application uninstall commands.

Lists installed application bundles and removes one together with the
data it left behind in the library folders. Everything goes through the
deletion orchestrator, so protected paths are refused and every removal
is logged.
"""

import asyncio
import json
from typing import Annotated

import typer
from rich.markup import escape
from rich.table import Table

from molectl.cli.display import print_items, print_outcome
from molectl.cli.types import (
    OutputFormat,
    build_orchestrator,
    build_uninstaller,
    progress_bar,
    require_config,
    require_policy,
    run_cancellable,
)
from molectl.models.items import DiscoveredItem
from molectl.ownership import AppUninstaller, InstalledApp, collect_running_ids, looks_like_identifier
from molectl.policy import ProtectionPolicy
from molectl.scanning import ScanCancelledError
from molectl.utils.formatting import (
    console,
    format_size,
    print_error,
    print_info,
    print_success,
    print_warning,
)

app = typer.Typer(
    help="Uninstall applications together with their leftovers.",
    no_args_is_help=True,
)


def list_installed(uninstaller: AppUninstaller, *, show_progress: bool) -> list[InstalledApp]:
    """List application bundles for the CLI, exiting if cancelled."""
    try:
        with progress_bar("Looking for applications...", enabled=show_progress) as progress:
            return run_cancellable(uninstaller.list_apps(progress), uninstaller.cancel)
    except ScanCancelledError as e:
        print_warning("Application scan cancelled.")
        raise typer.Exit(code=1) from e


def create_apps_table(apps: list[InstalledApp]) -> Table:
    """Table with one row per installed application."""
    table = Table(
        title="Installed Applications",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Name", style="text", no_wrap=True)
    table.add_column("Version", style="muted")
    table.add_column("Identifier", style="muted", overflow="ellipsis")
    table.add_column("Size", style="size", justify="right")
    table.add_column("Cask", style="muted")
    for installed in apps:
        table.add_row(
            escape(installed.name),
            escape(installed.version or "-"),
            escape(installed.identifier or "-"),
            format_size(installed.size),
            escape(installed.brew_cask or ""),
        )
    return table


@app.command(name="list")
def list_apps(
    output_format: Annotated[
        OutputFormat,
        typer.Option("--format", "-f", help="Output format.", case_sensitive=False),
    ] = OutputFormat.TABLE,
) -> None:
    """List installed applications, largest first."""
    uninstaller = build_uninstaller(require_config(), require_policy())
    apps = list_installed(uninstaller, show_progress=output_format == OutputFormat.TABLE)

    if output_format == OutputFormat.JSON:
        data = [
            {
                "name": installed.name,
                "identifier": installed.identifier,
                "version": installed.version,
                "path": str(installed.path),
                "size": installed.size,
                "brew_cask": installed.brew_cask,
            }
            for installed in apps
        ]
        console.print_json(json.dumps(data))
        return

    if not apps:
        print_info("No application bundles found.")
        return

    console.print(create_apps_table(apps))


def _leftovers_only(
    uninstaller: AppUninstaller, policy: ProtectionPolicy, identifier: str
) -> list[DiscoveredItem]:
    if policy.is_protected_app(identifier) or policy.is_protected_orphan(identifier):
        print_error(f"Cannot remove data of protected application: {escape(identifier)}")
        raise typer.Exit(code=1)
    print_info(f"No bundle found for {escape(identifier)}; looking for leftovers only.")
    # The identifier doubles as the name so short name variants never match
    return run_cancellable(uninstaller.find_remnants(identifier, identifier), uninstaller.cancel)


def _bundle_and_leftovers(
    uninstaller: AppUninstaller, target: InstalledApp, *, include_remnants: bool
) -> list[DiscoveredItem]:
    if target.identifier is not None and target.identifier in collect_running_ids():
        print_error(f"{escape(target.name)} is running. Quit it first.")
        raise typer.Exit(code=1)
    try:
        items = run_cancellable(
            uninstaller.plan(target, include_remnants=include_remnants),
            uninstaller.cancel,
        )
    except PermissionError as e:
        print_error(escape(str(e)))
        raise typer.Exit(code=1) from e
    if target.brew_cask:
        print_warning(
            f"{escape(target.name)} was installed by Homebrew; run "
            f"'brew uninstall --cask {escape(target.brew_cask)}' to update Homebrew's records."
        )
    return items


@app.command()
def remove(
    name: Annotated[
        str,
        typer.Argument(help="Application name, bundle identifier or bundle path."),
    ],
    keep_remnants: Annotated[
        bool,
        typer.Option("--keep-remnants", help="Only remove the application bundle."),
    ] = False,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Run all checks but delete nothing."),
    ] = False,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt."),
    ] = False,
) -> None:
    """Move an application and its leftovers to the trash.

    When no bundle matches but NAME is an identifier, only the leftovers
    of that (already removed) application are cleaned.
    """
    config = require_config()
    policy = require_policy()
    uninstaller = build_uninstaller(config, policy)
    apps = list_installed(uninstaller, show_progress=True)
    target = next((installed for installed in apps if installed.matches(name)), None)

    try:
        if target is not None:
            items = _bundle_and_leftovers(uninstaller, target, include_remnants=not keep_remnants)
        elif looks_like_identifier(name) and not keep_remnants:
            items = _leftovers_only(uninstaller, policy, name)
        else:
            print_error(f"No installed application matches '{escape(name)}'.")
            raise typer.Exit(code=1)
    except ScanCancelledError as e:
        print_warning("Leftover search cancelled.")
        raise typer.Exit(code=1) from e

    if not items:
        print_success(f"Nothing left of {escape(name)}.")
        return

    print_items("Uninstall Plan", items)
    total = sum(item.size for item in items)

    if not dry_run and not yes:
        confirmed = typer.confirm(f"\nMove {len(items)} items ({format_size(total)}) to the trash?", default=False)
        if not confirmed:
            print_info("Aborted.")
            raise typer.Exit(code=0)

    orchestrator = build_orchestrator(config, policy)
    outcome = asyncio.run(orchestrator.clean(items, dry_run=dry_run, skip_running=False))
    print_outcome(outcome, dry_run=dry_run)

    if outcome.had_errors:
        raise typer.Exit(code=1)
