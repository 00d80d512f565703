"""Installed application bundles and the data they leave behind.

An uninstall plan consists of the application bundle plus its remnants:
direct entries of the usual support, cache, preference, log, container
and launch-agent folders whose name contains the bundle identifier or a
variant of the application name (case-insensitive). Remnants the
protection policy would refuse to remove are left out of the plan.
"""

import asyncio
import logging
import os
import plistlib
import sys
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path

from molectl.models.items import Category, DiscoveredItem
from molectl.ownership.installed import find_app_bundles
from molectl.policy.whitelist import ProtectionPolicy
from molectl.scanning.traversal import ProgressCallback, ScanCancelledError, TraversalEngine

logger = logging.getLogger(__name__)

# Name variants shorter than this match far too many unrelated folders
MIN_PATTERN_LENGTH = 3


class RemnantType(str, Enum):
    """Kind of folder a remnant was found in."""

    APPLICATION_SUPPORT = "application_support"
    CACHES = "caches"
    PREFERENCES = "preferences"
    LOGS = "logs"
    LAUNCH_AGENTS = "launch_agents"
    LAUNCH_DAEMONS = "launch_daemons"
    CONTAINERS = "containers"
    SAVED_STATE = "saved_state"
    OTHER = "other"

    @property
    def label(self) -> str:
        """Human-readable folder kind."""
        return _TYPE_LABELS[self]


_TYPE_LABELS: dict[RemnantType, str] = {
    RemnantType.APPLICATION_SUPPORT: "Application Support",
    RemnantType.CACHES: "Caches",
    RemnantType.PREFERENCES: "Preferences",
    RemnantType.LOGS: "Logs",
    RemnantType.LAUNCH_AGENTS: "Launch Agents",
    RemnantType.LAUNCH_DAEMONS: "Launch Daemons",
    RemnantType.CONTAINERS: "Containers",
    RemnantType.SAVED_STATE: "Saved State",
    RemnantType.OTHER: "Other",
}


@dataclass(frozen=True, slots=True)
class RemnantLocation:
    """A folder whose direct entries may belong to an application."""

    path: Path
    kind: RemnantType


_DARWIN_REMNANT_DIRS: tuple[tuple[str, RemnantType], ...] = (
    ("~/Library/Application Support", RemnantType.APPLICATION_SUPPORT),
    ("~/Library/Caches", RemnantType.CACHES),
    ("~/Library/Preferences", RemnantType.PREFERENCES),
    ("~/Library/Logs", RemnantType.LOGS),
    ("~/Library/LaunchAgents", RemnantType.LAUNCH_AGENTS),
    ("/Library/LaunchAgents", RemnantType.LAUNCH_AGENTS),
    ("/Library/LaunchDaemons", RemnantType.LAUNCH_DAEMONS),
    ("~/Library/Containers", RemnantType.CONTAINERS),
    ("~/Library/Group Containers", RemnantType.CONTAINERS),
    ("~/Library/Saved Application State", RemnantType.SAVED_STATE),
    ("~/Library/WebKit", RemnantType.OTHER),
    ("~/Library/HTTPStorages", RemnantType.OTHER),
    ("~/Library/Cookies", RemnantType.OTHER),
)

_LINUX_REMNANT_DIRS: tuple[tuple[str, RemnantType], ...] = (
    ("~/.local/share", RemnantType.APPLICATION_SUPPORT),
    ("~/.cache", RemnantType.CACHES),
    ("~/.config", RemnantType.PREFERENCES),
    ("~/.local/state", RemnantType.LOGS),
    ("~/.config/autostart", RemnantType.LAUNCH_AGENTS),
    ("~/.config/systemd/user", RemnantType.LAUNCH_AGENTS),
    ("~/.var/app", RemnantType.CONTAINERS),
)

_DARWIN_APP_DIRS: tuple[str, ...] = ("/Applications", "~/Applications")

_CASKROOMS: tuple[Path, ...] = (Path("/opt/homebrew/Caskroom"), Path("/usr/local/Caskroom"))


def _expand(paths: Iterable[str]) -> tuple[Path, ...]:
    return tuple(Path(os.path.expanduser(p)) for p in paths)


def default_remnant_locations(platform: str | None = None) -> tuple[RemnantLocation, ...]:
    """Remnant folders for a platform, home-expanded."""
    platform = platform or sys.platform
    raw = _DARWIN_REMNANT_DIRS if platform == "darwin" else _LINUX_REMNANT_DIRS
    return tuple(RemnantLocation(Path(os.path.expanduser(path)), kind) for path, kind in raw)


def remnant_patterns(identifier: str | None, name: str) -> tuple[str, ...]:
    """Case-folded substrings that mark a folder entry as belonging to an app.

    Args:
        identifier: Bundle or application identifier, if known.
        name: Application display name.

    Returns:
        Unique patterns: the identifier, the name, and the name with spaces
        removed or replaced by ``-`` and ``_``. Patterns shorter than
        :data:`MIN_PATTERN_LENGTH` are dropped.
    """
    candidates = [
        identifier or "",
        name,
        name.replace(" ", ""),
        name.replace(" ", "-"),
        name.replace(" ", "_"),
    ]
    patterns: list[str] = []
    for candidate in candidates:
        folded = candidate.casefold()
        if len(folded) >= MIN_PATTERN_LENGTH and folded not in patterns:
            patterns.append(folded)
    return tuple(patterns)


def _read_info(bundle: Path) -> dict[str, object]:
    try:
        with open(bundle / "Contents" / "Info.plist", "rb") as f:
            info = plistlib.load(f)
    except (OSError, plistlib.InvalidFileException, ValueError):
        return {}
    return info if isinstance(info, dict) else {}


def _text(info: dict[str, object], key: str) -> str | None:
    value = info.get(key)
    return value if isinstance(value, str) and value else None


def _modified(path: Path) -> datetime | None:
    try:
        return datetime.fromtimestamp(path.lstat().st_mtime, tz=UTC)
    except OSError:
        return None


def _outside_home(path: Path) -> bool:
    try:
        path.relative_to(Path.home())
    except ValueError:
        return True
    return False


@dataclass(frozen=True, slots=True)
class InstalledApp:
    """An application bundle that can be uninstalled.

    Attributes:
        path: Path of the ``.app`` bundle.
        name: Bundle name without the ``.app`` extension.
        identifier: CFBundleIdentifier, if the bundle declares one.
        version: CFBundleShortVersionString, if present.
        size: Bundle size in bytes.
        last_modified: Modification time of the bundle.
        brew_cask: Homebrew cask that installed the bundle, if any.
    """

    path: Path
    name: str
    identifier: str | None = None
    version: str | None = None
    size: int = 0
    last_modified: datetime | None = None
    brew_cask: str | None = None

    def matches(self, query: str) -> bool:
        """Whether ``query`` names this app by name, identifier or path."""
        folded = query.casefold().removesuffix(".app")
        if folded == self.name.casefold():
            return True
        if self.identifier is not None and folded == self.identifier.casefold():
            return True
        return Path(os.path.expanduser(query)) == self.path


def brew_cask_names(caskrooms: Iterable[Path] = _CASKROOMS) -> dict[str, str]:
    """Map of folded app-name variants to Homebrew cask names.

    The first Caskroom that exists is used.
    """
    for caskroom in caskrooms:
        if not caskroom.is_dir():
            continue
        casks: dict[str, str] = {}
        try:
            entries = sorted(p.name for p in caskroom.iterdir())
        except OSError as e:
            logger.debug("Cannot list %s: %s", caskroom, e)
            return {}
        for cask in entries:
            casks[cask.casefold()] = cask
            casks[cask.replace("-", " ").casefold()] = cask
        return casks
    return {}


class AppUninstaller:
    """Lists installed application bundles and plans their removal.

    Args:
        engine: Traversal engine used to measure bundles and remnants.
        policy: Protection policy; protected apps cannot be planned and
            protected remnants are left out.
        app_dirs: Folders searched for ``.app`` bundles.
        locations: Folders searched for remnants.
        caskrooms: Homebrew Caskroom folders used to detect casks.
        platform: Platform name, defaults to the running OS.
    """

    def __init__(
        self,
        engine: TraversalEngine,
        policy: ProtectionPolicy,
        *,
        app_dirs: Iterable[Path] | None = None,
        locations: Iterable[RemnantLocation] | None = None,
        caskrooms: Iterable[Path] = _CASKROOMS,
        platform: str | None = None,
    ) -> None:
        platform = platform or sys.platform
        self._engine = engine
        self._policy = policy
        if app_dirs is not None:
            self._app_dirs = tuple(app_dirs)
        else:
            self._app_dirs = _expand(_DARWIN_APP_DIRS) if platform == "darwin" else ()
        self._locations = tuple(locations) if locations is not None else default_remnant_locations(platform)
        self._caskrooms = tuple(caskrooms)
        self._cancelled = False

    def cancel(self) -> None:
        """Request cancellation of the running listing or remnant search."""
        self._cancelled = True
        self._engine.cancel()

    async def list_apps(self, progress: ProgressCallback | None = None) -> list[InstalledApp]:
        """Installed application bundles, largest first.

        Raises:
            ScanCancelledError: If cancelled before completion.
        """
        try:
            bundles: list[Path] = []
            for app_dir in self._app_dirs:
                if app_dir.is_dir():
                    bundles.extend(await asyncio.to_thread(find_app_bundles, app_dir))
            casks = await asyncio.to_thread(brew_cask_names, self._caskrooms)

            apps: list[InstalledApp] = []
            for index, bundle in enumerate(bundles):
                self._check_cancelled()
                if progress is not None:
                    progress(f"Measuring {bundle.name}...", index / len(bundles))
                apps.append(await self._describe(bundle, casks))

            self._check_cancelled()
            if progress is not None:
                progress("Scan complete", 1.0)
            apps.sort(key=lambda app: app.size, reverse=True)
            return apps
        finally:
            self._reset()

    async def find_remnants(self, identifier: str | None, name: str) -> list[DiscoveredItem]:
        """Entries of the remnant folders that belong to an application.

        Args:
            identifier: Bundle identifier, if known.
            name: Application name.

        Returns:
            Remnants, largest first.

        Raises:
            ScanCancelledError: If cancelled before completion.
        """
        patterns = remnant_patterns(identifier, name)
        if not patterns:
            return []

        try:
            items: list[DiscoveredItem] = []
            seen: set[Path] = set()
            for location in self._locations:
                for entry in self._entries(location.path):
                    self._check_cancelled()
                    if entry in seen or entry.name.startswith("."):
                        continue
                    folded = entry.name.casefold()
                    if not any(pattern in folded for pattern in patterns):
                        continue
                    if self._policy.rejects(entry):
                        logger.debug("Leaving protected remnant %s", entry)
                        continue
                    seen.add(entry)
                    size = await self._engine.directory_size(entry)
                    items.append(
                        DiscoveredItem(
                            path=entry,
                            name=entry.name,
                            size=size,
                            category=Category.APP_REMNANTS,
                            last_modified=_modified(entry),
                            requires_admin=_outside_home(entry),
                            subtitle=location.kind.label,
                        )
                    )

            self._check_cancelled()
            items.sort(key=lambda item: item.size, reverse=True)
            return items
        finally:
            self._reset()

    async def plan(self, app: InstalledApp, *, include_remnants: bool = True) -> list[DiscoveredItem]:
        """Items to remove for an uninstall: the bundle, then its remnants.

        Raises:
            PermissionError: If the application identifier is protected.
            ScanCancelledError: If cancelled before completion.
        """
        if app.identifier is not None and self._policy.is_protected_app(app.identifier):
            msg = f"Cannot uninstall protected application: {app.identifier}"
            raise PermissionError(msg)

        bundle = DiscoveredItem(
            path=app.path,
            name=app.path.name,
            size=app.size,
            category=Category.APPLICATIONS,
            last_modified=app.last_modified,
            requires_admin=not os.access(app.path.parent, os.W_OK),
            display_name=app.name,
            subtitle=app.version,
        )
        if not include_remnants:
            return [bundle]
        remnants = [item for item in await self.find_remnants(app.identifier, app.name) if item.path != app.path]
        return [bundle, *remnants]

    async def _describe(self, bundle: Path, casks: dict[str, str]) -> InstalledApp:
        info = await asyncio.to_thread(_read_info, bundle)
        name = bundle.name.removesuffix(".app")
        return InstalledApp(
            path=bundle,
            name=name,
            identifier=_text(info, "CFBundleIdentifier"),
            version=_text(info, "CFBundleShortVersionString"),
            size=await self._engine.directory_size(bundle),
            last_modified=_modified(bundle),
            brew_cask=casks.get(name.casefold()),
        )

    def _entries(self, directory: Path) -> list[Path]:
        try:
            with os.scandir(directory) as it:
                return sorted(Path(entry.path) for entry in it)
        except OSError as e:
            logger.debug("Cannot list %s: %s", directory, e)
            return []

    def _check_cancelled(self) -> None:
        if self._cancelled:
            raise ScanCancelledError

    def _reset(self) -> None:
        self._cancelled = False
        self._engine.reset()
