"""Whitelist management commands.

Built-in entries are listed but can never be removed; user entries live
in ~/.config/molectl/whitelist.toml.
"""

from typing import Annotated

import typer
from rich.markup import escape
from rich.table import Table

from molectl.policy import BUILTIN_RULE, RuleKind, WhitelistError, WhitelistStore
from molectl.utils.formatting import console, print_error, print_info, print_success

app = typer.Typer(
    help="Manage protected paths, apps, caches and identifiers.",
    no_args_is_help=True,
)

KindOption = Annotated[
    RuleKind,
    typer.Option("--kind", "-k", help="Protection domain.", case_sensitive=False),
]


@app.command("list")
def list_entries(
    kind: Annotated[
        RuleKind | None,
        typer.Option("--kind", "-k", help="Only show this domain.", case_sensitive=False),
    ] = None,
) -> None:
    """List built-in and user whitelist entries."""
    store = WhitelistStore()
    try:
        user = store.load()
    except WhitelistError as e:
        print_error(escape(str(e)))
        raise typer.Exit(code=1) from e

    table = Table(title="Whitelist", header_style="bold_header", border_style="border")
    table.add_column("Kind", width=8)
    table.add_column("Entry", no_wrap=True)
    table.add_column("Source", style="muted", width=8)

    kinds = [kind] if kind is not None else list(RuleKind)
    for rule_kind in kinds:
        for entry in sorted(BUILTIN_RULE.entries(rule_kind)):
            table.add_row(rule_kind.value, escape(entry), "built-in")
        for entry in sorted(user.entries(rule_kind)):
            table.add_row(rule_kind.value, f"[info]{escape(entry)}[/info]", "user")
    console.print(table)


@app.command()
def add(
    value: Annotated[str, typer.Argument(help="Path prefix, app id, cache name or identifier pattern.")],
    kind: KindOption = RuleKind.PATH,
) -> None:
    """Add a user whitelist entry."""
    store = WhitelistStore()
    try:
        added = store.add(kind, value)
    except WhitelistError as e:
        print_error(escape(str(e)))
        raise typer.Exit(code=1) from e
    if added:
        print_success(f"Protected {kind.value}: {escape(value)}")
    else:
        print_info(f"Already protected: {escape(value)}")


@app.command()
def remove(
    value: Annotated[str, typer.Argument(help="Entry to remove.")],
    kind: KindOption = RuleKind.PATH,
) -> None:
    """Remove a user whitelist entry."""
    store = WhitelistStore()
    try:
        removed = store.remove(kind, value)
    except WhitelistError as e:
        print_error(escape(str(e)))
        raise typer.Exit(code=1) from e
    if removed:
        print_success(f"Removed {kind.value}: {escape(value)}")
    else:
        print_info(f"Not in user whitelist: {escape(value)}")
