"""Discovery of leftover installer files (disk images, packages, archives).

Only the direct entries of each location are examined; subfolders are
never descended into. A ``.zip`` archive counts as an installer only when
one of its first entries is an application bundle, package or disk image.
"""

import asyncio
import logging
import os
import sys
import zipfile
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path, PurePosixPath

from molectl.models.items import Category, DiscoveredItem
from molectl.scanning.traversal import ProgressCallback, ScanCancelledError, TraversalEngine

logger = logging.getLogger(__name__)

INSTALLER_EXTENSIONS: frozenset[str] = frozenset(
    {".dmg", ".pkg", ".mpkg", ".iso", ".xip", ".deb", ".rpm", ".appimage"}
)

# Entries inside a zip that make it an installer
_ZIP_PAYLOAD_EXTENSIONS: tuple[str, ...] = (".app", ".pkg", ".dmg", ".mpkg")
_ZIP_ENTRIES_CHECKED = 50


class InstallerSource(str, Enum):
    """Where an installer file was found."""

    DOWNLOADS = "downloads"
    DESKTOP = "desktop"
    DOCUMENTS = "documents"
    PUBLIC = "public"
    LIBRARY_DOWNLOADS = "library_downloads"
    SHARED = "shared"
    HOMEBREW = "homebrew"
    ICLOUD = "icloud"
    MAIL = "mail"

    @property
    def label(self) -> str:
        """Human-readable location name."""
        return _SOURCE_LABELS[self]


_SOURCE_LABELS: dict[InstallerSource, str] = {
    InstallerSource.DOWNLOADS: "Downloads",
    InstallerSource.DESKTOP: "Desktop",
    InstallerSource.DOCUMENTS: "Documents",
    InstallerSource.PUBLIC: "Public",
    InstallerSource.LIBRARY_DOWNLOADS: "Library Downloads",
    InstallerSource.SHARED: "Shared",
    InstallerSource.HOMEBREW: "Homebrew",
    InstallerSource.ICLOUD: "iCloud",
    InstallerSource.MAIL: "Mail",
}


@dataclass(frozen=True, slots=True)
class InstallerLocation:
    """A folder whose direct entries may be leftover installers."""

    path: Path
    source: InstallerSource


_COMMON_LOCATIONS: tuple[tuple[str, InstallerSource], ...] = (
    ("~/Downloads", InstallerSource.DOWNLOADS),
    ("~/Desktop", InstallerSource.DESKTOP),
    ("~/Documents", InstallerSource.DOCUMENTS),
    ("~/Public", InstallerSource.PUBLIC),
)

_DARWIN_LOCATIONS: tuple[tuple[str, InstallerSource], ...] = (
    ("~/Library/Downloads", InstallerSource.LIBRARY_DOWNLOADS),
    ("/Users/Shared", InstallerSource.SHARED),
    ("~/Library/Caches/Homebrew/downloads", InstallerSource.HOMEBREW),
    ("~/Library/Mobile Documents/com~apple~CloudDocs/Downloads", InstallerSource.ICLOUD),
    ("~/Library/Mail Downloads", InstallerSource.MAIL),
    ("~/Library/Containers/com.apple.mail/Data/Library/Mail Downloads", InstallerSource.MAIL),
)

_LINUX_LOCATIONS: tuple[tuple[str, InstallerSource], ...] = (
    ("~/.cache/Homebrew/downloads", InstallerSource.HOMEBREW),
)


def default_locations(platform: str | None = None) -> tuple[InstallerLocation, ...]:
    """Installer locations for a platform, home-expanded."""
    platform = platform or sys.platform
    extra = _DARWIN_LOCATIONS if platform == "darwin" else _LINUX_LOCATIONS
    return tuple(
        InstallerLocation(Path(os.path.expanduser(path)), source) for path, source in (*_COMMON_LOCATIONS, *extra)
    )


def is_installer_zip(path: Path) -> bool:
    """Whether one of the first entries of a zip archive is an installer payload."""
    try:
        with zipfile.ZipFile(path) as archive:
            names = archive.namelist()[:_ZIP_ENTRIES_CHECKED]
    except (OSError, zipfile.BadZipFile) as e:
        logger.debug("Cannot read archive %s: %s", path, e)
        return False
    for name in names:
        for part in PurePosixPath(name).parts:
            if part.lower().endswith(_ZIP_PAYLOAD_EXTENSIONS):
                return True
    return False


def installer_kind(path: Path) -> str | None:
    """Lower-case extension of an installer file, or None if it is not one."""
    suffix = path.suffix.lower()
    if suffix in INSTALLER_EXTENSIONS:
        return suffix
    if suffix == ".zip" and is_installer_zip(path):
        return suffix
    return None


class InstallerScanner:
    """Finds installer files left behind in download and document folders.

    Args:
        engine: Traversal engine supplying the cancellation flag.
        locations: Folders to examine. Defaults to the platform's usual
            download, desktop and document folders.
    """

    def __init__(self, engine: TraversalEngine, *, locations: Iterable[InstallerLocation] | None = None) -> None:
        self._engine = engine
        self._locations = tuple(locations) if locations is not None else default_locations()

    async def scan(self, progress: ProgressCallback | None = None) -> list[DiscoveredItem]:
        """Examine every location and return installers, largest first.

        Raises:
            ScanCancelledError: If the engine is cancelled.
        """
        locations = [location for location in self._locations if location.path.is_dir()]
        items: list[DiscoveredItem] = []
        seen: set[Path] = set()

        for index, location in enumerate(locations):
            self._check_cancelled()
            if progress is not None:
                progress(f"Scanning {location.source.label}...", index / len(locations))
            for item in self._scan_location(location):
                if item.path not in seen:
                    seen.add(item.path)
                    items.append(item)
            await asyncio.sleep(0)

        self._check_cancelled()
        if progress is not None:
            progress("Scan complete", 1.0)
        items.sort(key=lambda item: item.size, reverse=True)
        return items

    def _scan_location(self, location: InstallerLocation) -> list[DiscoveredItem]:
        try:
            with os.scandir(location.path) as it:
                entries = sorted(it, key=lambda entry: entry.name)
        except OSError as e:
            logger.debug("Skipping unreadable folder %s: %s", location.path, e)
            return []

        items: list[DiscoveredItem] = []
        for entry in entries:
            self._check_cancelled()
            if entry.name.startswith("."):
                continue
            try:
                if not entry.is_file(follow_symlinks=False):
                    continue
                stat = entry.stat(follow_symlinks=False)
            except OSError:
                continue
            if stat.st_size == 0:
                continue
            path = Path(entry.path)
            if installer_kind(path) is None:
                continue
            items.append(
                DiscoveredItem(
                    path=path,
                    name=entry.name,
                    size=stat.st_size,
                    category=Category.INSTALLERS,
                    last_modified=datetime.fromtimestamp(stat.st_mtime, tz=UTC),
                    subtitle=location.source.label,
                )
            )
        return items

    def _check_cancelled(self) -> None:
        if self._engine.cancelled:
            self._engine.reset()
            raise ScanCancelledError
