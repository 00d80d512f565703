"""Shared types and component wiring for CLI commands.

Configuration and the whitelist are loaded once per command and injected
into every component, so commands never read global state directly.
"""

import asyncio
import logging
import signal
from collections.abc import Callable, Coroutine, Iterator
from contextlib import contextmanager
from enum import Enum
from typing import Any, TypeVar

import typer
from rich.markup import escape
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn

from molectl.cleaning import DeletionOrchestrator, PrivilegedRemover, TrashBin
from molectl.core.config import ConfigError, MolectlConfig, load_config
from molectl.core.oplog import OperationLog
from molectl.models.items import Category
from molectl.ownership import (
    AppUninstaller,
    InstalledAppIndex,
    OrphanCorrelator,
    PresenceLookup,
    RunningOwnerDetector,
)
from molectl.policy import ProtectionPolicy, WhitelistError, WhitelistStore
from molectl.scanning import ProgressCallback, TraversalEngine
from molectl.utils.formatting import err_console, print_error

logger = logging.getLogger(__name__)

T = TypeVar("T")


class OutputFormat(str, Enum):
    """Output format options."""

    TABLE = "table"
    JSON = "json"


def require_config() -> MolectlConfig:
    """Load the configuration or exit with an error message."""
    try:
        return load_config()
    except ConfigError as e:
        print_error(escape(str(e)))
        raise typer.Exit(code=1) from e


def require_policy() -> ProtectionPolicy:
    """Load the protection policy or exit with an error message."""
    try:
        return WhitelistStore().load_policy()
    except WhitelistError as e:
        print_error(escape(str(e)))
        raise typer.Exit(code=1) from e


def parse_categories(values: list[str] | None) -> set[Category] | None:
    """Convert ``--category`` values, exiting on unknown names."""
    if not values:
        return None
    categories: set[Category] = set()
    for value in values:
        try:
            categories.add(Category(value))
        except ValueError:
            valid = ", ".join(c.value for c in Category)
            print_error(f"Unknown category '{value}'. Valid categories: {valid}")
            raise typer.Exit(code=1) from None
    return categories


def build_engine(config: MolectlConfig) -> TraversalEngine:
    """Traversal engine configured from settings."""
    return TraversalEngine(include_hidden=config.include_hidden, yield_every=config.yield_every)


def build_orchestrator(config: MolectlConfig, policy: ProtectionPolicy) -> DeletionOrchestrator:
    """Deletion orchestrator configured from settings."""
    return DeletionOrchestrator(
        policy,
        OperationLog(max_bytes=config.log_max_bytes),
        trash=TrashBin(),
        remover=PrivilegedRemover(config.elevation),
        detector=RunningOwnerDetector(),
        admin_batch_size=config.admin_batch_size,
        skip_running=config.skip_running_apps,
    )


def build_correlator(
    config: MolectlConfig,
    policy: ProtectionPolicy,
    engine: TraversalEngine,
    inactivity_days: int | None = None,
) -> OrphanCorrelator:
    """Orphan correlator configured from settings."""
    return OrphanCorrelator(
        engine,
        policy,
        index=InstalledAppIndex(),
        lookup=(
            PresenceLookup(ignore=config.effective_orphan_dirs + config.effective_service_dirs)
            if config.verify_with_lookup
            else None
        ),
        candidate_dirs=config.effective_orphan_dirs,
        service_dirs=config.effective_service_dirs,
        inactivity_days=config.inactivity_days if inactivity_days is None else inactivity_days,
    )


def build_uninstaller(config: MolectlConfig, policy: ProtectionPolicy) -> AppUninstaller:
    """Application uninstaller configured from settings."""
    return AppUninstaller(build_engine(config), policy)


def run_cancellable(coro: Coroutine[Any, Any, T], cancel: Callable[[], None]) -> T:
    """Run a coroutine, turning Ctrl-C into a cooperative cancel request."""

    async def runner() -> T:
        loop = asyncio.get_running_loop()
        installed = False
        try:
            loop.add_signal_handler(signal.SIGINT, cancel)
            installed = True
        except (NotImplementedError, RuntimeError, ValueError) as e:
            logger.debug("Cannot install SIGINT handler: %s", e)
        try:
            return await coro
        finally:
            if installed:
                loop.remove_signal_handler(signal.SIGINT)

    return asyncio.run(runner())


@contextmanager
def progress_bar(description: str, *, enabled: bool = True) -> Iterator[ProgressCallback | None]:
    """Rich progress bar on stderr, exposed as a progress callback."""
    if not enabled:
        yield None
        return

    with Progress(
        SpinnerColumn(),
        TextColumn("[info]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=err_console,
        transient=True,
    ) as progress:
        task = progress.add_task(description, total=1.0)

        def update(message: str, fraction: float) -> None:
            progress.update(task, description=message, completed=fraction)

        yield update
