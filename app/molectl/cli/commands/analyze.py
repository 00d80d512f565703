"""Disk usage analysis command.

Builds a depth-limited disk usage tree and renders it with Rich.
"""

from pathlib import Path
from typing import Annotated

import typer
from rich.markup import escape
from rich.tree import Tree

from molectl.cli.types import build_engine, progress_bar, require_config, run_cancellable
from molectl.core.paths import contract_home
from molectl.scanning import DiskNode, DiskTree, InvalidPathError, ScanCancelledError
from molectl.utils.formatting import console, create_items_table, format_size, print_error, print_warning

app = typer.Typer(
    help="Show what takes up space below a directory.",
    invoke_without_command=True,
)


def _label(node: DiskNode, parent_size: int) -> str:
    share = f" [muted]{node.size * 100 / parent_size:.0f}%[/muted]" if parent_size else ""
    name = escape(node.name) + ("/" if node.is_directory else "")
    style = "bold" if node.is_directory else "text"
    return f"[size]{format_size(node.size):>9}[/size]{share} [{style}]{name}[/{style}]"


def render_tree(tree: DiskTree, *, width: int = 10) -> Tree:
    """Render a DiskTree, showing at most ``width`` children per directory."""
    root = tree.root
    rendered = Tree(f"[bold_header]{escape(contract_home(root.path))}[/] [size]{format_size(root.size)}[/size]")
    pending: list[tuple[DiskNode, Tree]] = [(root, rendered)]
    while pending:
        node, branch = pending.pop()
        children = tree.children(node.id)
        for child in children[:width]:
            child_branch = branch.add(_label(child, node.size))
            pending.append((child, child_branch))
        if len(children) > width:
            rest = sum(child.size for child in children[width:])
            branch.add(f"[muted]… {len(children) - width} more ({format_size(rest)})[/muted]")
    return rendered


@app.callback(invoke_without_command=True)
def analyze_path(
    path: Annotated[
        Path,
        typer.Argument(help="Directory to analyze."),
    ] = Path("."),
    depth: Annotated[
        int,
        typer.Option("--depth", "-d", min=0, help="Levels to expand."),
    ] = 2,
    top: Annotated[
        int,
        typer.Option("--top", "-t", min=0, help="Largest files to list."),
    ] = 10,
    width: Annotated[
        int,
        typer.Option("--width", "-w", min=1, help="Children shown per directory."),
    ] = 10,
) -> None:
    """Analyze disk usage below PATH."""
    engine = build_engine(require_config())
    root = path.expanduser().resolve()

    try:
        with progress_bar("Analyzing...") as progress:
            tree = run_cancellable(engine.build_tree(root, max_depth=depth, progress=progress), engine.cancel)
    except InvalidPathError as e:
        print_error(f"Not a directory: {escape(str(path))}")
        raise typer.Exit(code=1) from e
    except ScanCancelledError as e:
        print_warning("Analysis cancelled.")
        raise typer.Exit(code=1) from e

    console.print(render_tree(tree, width=width))

    largest = tree.largest_files(top)
    if largest:
        table = create_items_table(f"Largest Files (top {len(largest)})")
        for node in largest:
            table.add_row("", escape(node.name), format_size(node.size), "", escape(contract_home(node.path)))
        console.print(table)
