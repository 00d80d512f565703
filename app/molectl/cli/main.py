"""Main CLI application entry point.

Defines the Typer application and global options.
"""

import logging
from typing import Annotated

import typer
from rich.logging import RichHandler

from molectl import __version__
from molectl.cli.commands import (
    analyze,
    clean,
    config,
    installers,
    log,
    orphans,
    purge,
    scan,
    trash,
    uninstall,
    whitelist,
)
from molectl.utils.formatting import err_console

app = typer.Typer(
    name="molectl",
    help="Find and safely reclaim disk space.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"molectl version {__version__}")
        raise typer.Exit()


def configure_logging(verbose: bool, quiet: bool) -> None:
    """Route library logging to stderr through Rich."""
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False, markup=False)],
        force=True,
    )


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable debug logging.",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Only log errors.",
        ),
    ] = False,
) -> None:
    """molectl - Find and safely reclaim disk space.

    Scan caches, logs, build artifacts and leftover installers, find data
    left behind by uninstalled applications, uninstall applications, and
    move what you select to the trash.
    """
    configure_logging(verbose, quiet)
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet


# Register commands
app.add_typer(scan.app, name="scan")
app.add_typer(clean.app, name="clean")
app.add_typer(orphans.app, name="orphans")
app.add_typer(analyze.app, name="analyze")
app.add_typer(purge.app, name="purge")
app.add_typer(installers.app, name="installers")
app.add_typer(uninstall.app, name="uninstall")
app.add_typer(trash.app, name="trash")
app.add_typer(log.app, name="log")
app.add_typer(whitelist.app, name="whitelist")
app.add_typer(config.app, name="config")


if __name__ == "__main__":
    app()
