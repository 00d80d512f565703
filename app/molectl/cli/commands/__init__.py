"""CLI commands for molectl.

This package contains all subcommand implementations.
"""

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

__all__ = [
    "analyze",
    "clean",
    "config",
    "installers",
    "log",
    "orphans",
    "purge",
    "scan",
    "trash",
    "uninstall",
    "whitelist",
]
