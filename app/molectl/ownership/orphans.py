"""Detection of data left behind by removed applications.

A folder entry is reported as orphaned when all of these hold:

1. its name looks like a reverse-domain identifier (two or more parts);
2. it is neither a protected orphan identifier nor a protected cache name;
3. no installed or running application carries that identifier, compared
   exactly and case-insensitively;
4. the system search index does not find the identifier anywhere on disk
   (an inconclusive answer counts as found);
5. it has not been modified within the inactivity threshold;
6. it is not empty;
7. the protection policy would not refuse its removal.

Results are sorted by size, largest first. Auto-start service
descriptors (launchd plists, systemd units, XDG autostart entries) are
checked with rules 1-4 and 7 only.
"""

import logging
import os
from collections.abc import Iterable
from datetime import UTC, datetime, timedelta
from pathlib import Path

from molectl.models.items import Category, DiscoveredItem
from molectl.ownership.installed import InstalledAppIndex
from molectl.ownership.presence import PresenceLookup
from molectl.policy.whitelist import ProtectionPolicy
from molectl.scanning.traversal import ProgressCallback, ScanCancelledError, TraversalEngine

logger = logging.getLogger(__name__)

DEFAULT_INACTIVITY_DAYS = 60

SERVICE_SUFFIXES: tuple[str, ...] = (".plist", ".service", ".desktop")


def looks_like_identifier(name: str) -> bool:
    """Whether a name has at least two non-empty dot-separated parts."""
    return len([part for part in name.split(".") if part]) >= 2


def display_name_for(identifier: str) -> str:
    """Friendly application name: the last part of the identifier."""
    parts = [part for part in identifier.split(".") if part]
    return parts[-1] if parts else identifier


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


class OrphanCorrelator:
    """Finds orphaned application data and services.

    Args:
        engine: Traversal engine used to measure candidates.
        policy: Protection policy supplying protected identifiers.
        index: Source of installed and running application identifiers.
        lookup: Identifier-presence lookup. None skips that check.
        candidate_dirs: Folders whose direct entries are examined.
        service_dirs: Folders holding auto-start service descriptors.
        inactivity_days: Minimum age of an orphan, in days.
    """

    def __init__(
        self,
        engine: TraversalEngine,
        policy: ProtectionPolicy,
        *,
        index: InstalledAppIndex | None = None,
        lookup: PresenceLookup | None = None,
        candidate_dirs: Iterable[Path] = (),
        service_dirs: Iterable[Path] = (),
        inactivity_days: int = DEFAULT_INACTIVITY_DAYS,
    ) -> None:
        self._engine = engine
        self._policy = policy
        self._index = index or InstalledAppIndex()
        self._lookup = lookup
        self._candidate_dirs = tuple(candidate_dirs)
        self._service_dirs = tuple(service_dirs)
        self._inactivity = timedelta(days=inactivity_days)
        self._cancelled = False

    def cancel(self) -> None:
        """Request cancellation of the running scan."""
        self._cancelled = True
        self._engine.cancel()

    async def known_identifiers(self) -> frozenset[str]:
        """Identifiers of installed and running applications."""
        return await self._index.identifiers()

    async def is_orphan_identifier(self, name: str, known: frozenset[str]) -> bool:
        """Apply the identifier rules (shape, protection, installed, lookup).

        Args:
            name: Candidate identifier (folder or descriptor name).
            known: Installed and running application identifiers.

        Returns:
            True if no application appears to own the identifier.
        """
        if not looks_like_identifier(name):
            return False
        if self._policy.is_protected_orphan(name) or self._policy.is_protected_cache(name):
            return False
        if name in known:
            return False
        folded = name.casefold()
        if any(identifier.casefold() == folded for identifier in known):
            return False
        if self._lookup is not None:
            present = await self._lookup.exists(name)
            if present is None or present:
                return False
        return True

    async def scan(
        self,
        progress: ProgressCallback | None = None,
        known: frozenset[str] | None = None,
    ) -> list[DiscoveredItem]:
        """Find orphaned entries in the candidate folders.

        Args:
            progress: Optional callback receiving (message, fraction).
            known: Pre-collected application identifiers. Collected
                through the index when None.

        Returns:
            Orphaned items, largest first.

        Raises:
            ScanCancelledError: If cancelled before completion.
        """
        try:
            if known is None:
                known = await self.known_identifiers()
            self._check_cancelled()

            cutoff = datetime.now(UTC) - self._inactivity
            items: list[DiscoveredItem] = []
            dirs = [d for d in self._candidate_dirs if d.is_dir()]

            for index, directory in enumerate(dirs):
                self._check_cancelled()
                if progress is not None:
                    progress(f"Checking {directory.name} for orphans...", index / len(dirs))
                for entry in self._entries(directory):
                    self._check_cancelled()
                    item = await self._examine(entry, directory, known, cutoff)
                    if item is not None:
                        items.append(item)

            self._check_cancelled()
            if progress is not None:
                progress("Orphan scan complete", 1.0)
            items.sort(key=lambda item: item.size, reverse=True)
            return items
        finally:
            self._reset()

    async def scan_services(self, known: frozenset[str] | None = None) -> list[DiscoveredItem]:
        """Find auto-start service descriptors whose application is gone.

        Descriptors outside the home directory are flagged admin-required.

        Raises:
            ScanCancelledError: If cancelled before completion.
        """
        try:
            if known is None:
                known = await self.known_identifiers()

            items: list[DiscoveredItem] = []
            for directory in self._service_dirs:
                if not directory.is_dir():
                    continue
                for entry in self._entries(directory):
                    self._check_cancelled()
                    if entry.suffix not in SERVICE_SUFFIXES or not entry.is_file():
                        continue
                    if self._policy.rejects(entry):
                        continue
                    name = entry.stem
                    if not await self.is_orphan_identifier(name, known):
                        continue
                    try:
                        size = entry.lstat().st_size
                    except OSError:
                        continue
                    items.append(
                        DiscoveredItem(
                            path=entry,
                            name=name,
                            size=size,
                            category=Category.ORPHANED,
                            last_modified=_modified(entry),
                            requires_admin=_outside_home(entry),
                            display_name=display_name_for(name),
                            subtitle=directory.name,
                        )
                    )

            self._check_cancelled()
            items.sort(key=lambda item: item.size, reverse=True)
            return items
        finally:
            self._reset()

    async def _examine(
        self,
        entry: Path,
        directory: Path,
        known: frozenset[str],
        cutoff: datetime,
    ) -> DiscoveredItem | None:
        if self._policy.rejects(entry):
            return None
        name = entry.name
        if not await self.is_orphan_identifier(name, known):
            return None

        modified = _modified(entry)
        if modified is not None and modified > cutoff:
            return None

        size = await self._engine.directory_size(entry)
        if size == 0:
            return None

        return DiscoveredItem(
            path=entry,
            name=name,
            size=size,
            category=Category.ORPHANED,
            last_modified=modified,
            requires_admin=_outside_home(entry),
            display_name=display_name_for(name),
            subtitle=directory.name,
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
