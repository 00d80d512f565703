"""Operation log commands."""

from typing import Annotated

import typer
from rich.markup import escape

from molectl.cli.types import require_config
from molectl.core.oplog import OperationLog
from molectl.utils.formatting import console, print_info, print_success

app = typer.Typer(
    help="Show or clear the operation log.",
    no_args_is_help=True,
)


def _styled(line: str) -> str:
    text = escape(line)
    if "] FAIL " in line:
        return f"[error]{text}[/error]"
    if " DRY-RUN: " in line or " SKIP-" in line:
        return f"[muted]{text}[/muted]"
    return f"[text]{text}[/text]"


@app.command()
def show(
    lines: Annotated[
        int,
        typer.Option("--lines", "-n", min=1, help="Number of recent entries to show."),
    ] = 50,
) -> None:
    """Show the most recent operation log entries."""
    log = OperationLog(max_bytes=require_config().log_max_bytes)
    entries = log.recent(lines)
    if not entries:
        print_info("Operation log is empty.")
        return
    for line in entries:
        console.print(_styled(line), highlight=False)


@app.command()
def clear(
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt."),
    ] = False,
) -> None:
    """Delete the operation log."""
    if not yes:
        confirmed = typer.confirm("Delete the operation log?", default=False)
        if not confirmed:
            print_info("Aborted.")
            raise typer.Exit(code=0)
    OperationLog().clear()
    print_success("Operation log cleared.")
