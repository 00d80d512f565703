"""Inventory of installed applications.

On macOS every ``.app`` bundle in the usual application folders
contributes its CFBundleIdentifier. On Linux flatpak and snap application
ids and the names of installed ``.desktop`` entries are used. Running
application identifiers and a fixed set of system components that live
outside the application folders are merged in.
"""

import asyncio
import logging
import os
import subprocess
import sys
from collections.abc import Iterable
from pathlib import Path

from molectl.ownership.running import collect_running_ids, read_bundle_identifier
from molectl.utils.shell import command_exists, run_command

logger = logging.getLogger(__name__)

# macOS components that own Library data but have no bundle in /Applications
SYSTEM_COMPONENT_IDS: frozenset[str] = frozenset(
    {
        "com.apple.ScreenSaver.Engine",
        "com.apple.dock",
        "com.apple.loginwindow",
        "com.apple.controlcenter",
        "com.apple.notificationcenterui",
        "com.apple.Spotlight",
        "com.apple.accessibility.heard",
        "com.apple.FolderActionsDispatcher",
    }
)

_DARWIN_APP_DIRS: tuple[str, ...] = (
    "/Applications",
    "~/Applications",
    "/System/Applications",
    "~/Library/Application Support/Setapp/Applications",
)

_LINUX_DESKTOP_DIRS: tuple[str, ...] = (
    "/usr/share/applications",
    "/usr/local/share/applications",
    "~/.local/share/applications",
    "/var/lib/flatpak/exports/share/applications",
    "~/.local/share/flatpak/exports/share/applications",
    "/var/lib/snapd/desktop/applications",
)


def _expand(paths: Iterable[str]) -> tuple[Path, ...]:
    return tuple(Path(os.path.expanduser(p)) for p in paths)


def find_app_bundles(root: Path) -> list[Path]:
    """All ``.app`` bundles beneath ``root``, without descending into bundles."""
    bundles: list[Path] = []
    pending = [root]
    while pending:
        current = pending.pop()
        try:
            with os.scandir(current) as it:
                entries = list(it)
        except OSError:
            continue
        for entry in entries:
            if entry.name.startswith("."):
                continue
            try:
                if not entry.is_dir(follow_symlinks=False):
                    continue
            except OSError:
                continue
            if entry.name.endswith(".app"):
                bundles.append(Path(entry.path))
            else:
                pending.append(Path(entry.path))
    return bundles


def _darwin_installed(app_dirs: Iterable[Path]) -> set[str]:
    identifiers: set[str] = set()
    for app_dir in app_dirs:
        if not app_dir.is_dir():
            continue
        for bundle in find_app_bundles(app_dir):
            bundle_id = read_bundle_identifier(bundle)
            if bundle_id:
                identifiers.add(bundle_id)
    return identifiers


def _command_lines(args: list[str]) -> list[str]:
    """Non-empty stdout lines of a listing command; empty on any failure."""
    if not command_exists(args[0]):
        return []
    try:
        result = run_command(args, timeout=30.0)
    except (FileNotFoundError, OSError, subprocess.TimeoutExpired) as e:
        logger.warning("%s failed: %s", args[0], e)
        return []
    if not result.success:
        logger.warning("%s exited with %d: %s", args[0], result.returncode, result.stderr.strip())
        return []
    return result.output_lines()


def _flatpak_installed() -> set[str]:
    return set(_command_lines(["flatpak", "list", "--app", "--columns=application"]))


def _snap_installed() -> set[str]:
    lines = _command_lines(["snap", "list"])
    # First line is the column header
    return {line.split()[0] for line in lines[1:] if line.split()}


def _desktop_entries(desktop_dirs: Iterable[Path]) -> set[str]:
    identifiers: set[str] = set()
    for desktop_dir in desktop_dirs:
        try:
            identifiers.update(p.stem for p in desktop_dir.glob("*.desktop"))
        except OSError:
            continue
    return identifiers


class InstalledAppIndex:
    """Collects identifiers of installed and running applications.

    Args:
        app_dirs: Override the folders searched for ``.app`` bundles (macOS)
            or ``.desktop`` entries (Linux).
        include_running: Merge in the identifiers of running applications.
        platform: Platform name, defaults to the running OS.
    """

    def __init__(
        self,
        app_dirs: Iterable[Path] | None = None,
        *,
        include_running: bool = True,
        platform: str | None = None,
    ) -> None:
        self._platform = platform or sys.platform
        if app_dirs is not None:
            self._app_dirs = tuple(app_dirs)
        elif self._platform == "darwin":
            self._app_dirs = _expand(_DARWIN_APP_DIRS)
        else:
            self._app_dirs = _expand(_LINUX_DESKTOP_DIRS)
        self._include_running = include_running

    def collect(self) -> frozenset[str]:
        """Gather identifiers synchronously (slow: walks folders, runs tools)."""
        if self._platform == "darwin":
            identifiers = _darwin_installed(self._app_dirs)
        else:
            identifiers = _flatpak_installed() | _snap_installed() | _desktop_entries(self._app_dirs)

        if self._include_running:
            identifiers |= collect_running_ids()
        identifiers |= SYSTEM_COMPONENT_IDS

        logger.debug("Indexed %d installed application identifiers", len(identifiers))
        return frozenset(identifiers)

    async def identifiers(self) -> frozenset[str]:
        """Gather identifiers in a worker thread."""
        return await asyncio.to_thread(self.collect)
