"""Configuration commands."""

from typing import Annotated

import typer
from rich.markup import escape
from rich.table import Table

from molectl.cli.types import require_config
from molectl.core.config import ConfigError, MolectlConfig, save_config
from molectl.core.paths import contract_home, get_config_path
from molectl.utils.formatting import console, print_error, print_info, print_success

app = typer.Typer(
    help="Show or create the configuration file.",
    no_args_is_help=True,
)


@app.command()
def show() -> None:
    """Show the effective configuration."""
    config = require_config()
    table = Table(
        title=f"Configuration ({contract_home(get_config_path())})",
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Setting", no_wrap=True)
    table.add_column("Value")

    for name, value in config.model_dump().items():
        table.add_row(name, escape(str(value)))
    table.add_row("orphan dirs", escape(", ".join(contract_home(p) for p in config.effective_orphan_dirs)))
    table.add_row("service dirs", escape(", ".join(contract_home(p) for p in config.effective_service_dirs)))
    console.print(table)


@app.command()
def init(
    force: Annotated[
        bool,
        typer.Option("--force", help="Overwrite an existing configuration file."),
    ] = False,
) -> None:
    """Write a configuration file with the default settings."""
    path = get_config_path()
    if path.exists() and not force:
        print_info(f"Configuration already exists: {contract_home(path)}")
        return
    try:
        saved = save_config(MolectlConfig(), path)
    except ConfigError as e:
        print_error(escape(str(e)))
        raise typer.Exit(code=1) from e
    print_success(f"Configuration written to {contract_home(saved)}")
