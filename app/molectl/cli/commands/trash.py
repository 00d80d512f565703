"""Trash inspection and emptying commands."""

import asyncio
from typing import Annotated

import typer
from rich.markup import escape

from molectl.cli.types import build_orchestrator, require_config, require_policy
from molectl.cleaning import TrashBin
from molectl.core.paths import contract_home
from molectl.utils.formatting import console, format_size, print_error, print_info, print_success

app = typer.Typer(
    help="Inspect and empty the trash.",
    no_args_is_help=True,
)


@app.command()
def info() -> None:
    """Show trash location, size and item count."""
    trash = TrashBin()
    size = asyncio.run(trash.size())
    console.print(f"[header]Location:[/] {contract_home(trash.location)}")
    console.print(f"[header]Items:[/] {trash.item_count()}")
    console.print(f"[header]Size:[/] [size]{format_size(size)}[/size]")


@app.command()
def empty(
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt."),
    ] = False,
) -> None:
    """Permanently delete everything in the trash."""
    trash = TrashBin()
    if trash.item_count() == 0:
        print_info("Trash is already empty.")
        return

    if not yes:
        confirmed = typer.confirm("Permanently delete all items in the trash?", default=False)
        if not confirmed:
            print_info("Aborted.")
            raise typer.Exit(code=0)

    orchestrator = build_orchestrator(require_config(), require_policy())
    try:
        freed = asyncio.run(orchestrator.empty_trash())
    except OSError as e:
        print_error(escape(f"Failed to empty trash: {e}"))
        raise typer.Exit(code=1) from e
    print_success(f"Emptied trash, freed {format_size(freed)}")
