"""Scan targets into categorised, selectable results."""

import logging
import os
from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path

from molectl.models.items import CategoryResult, DiscoveredItem, ScanTarget, group_by_category
from molectl.policy.whitelist import ProtectionPolicy
from molectl.scanning.traversal import ProgressCallback, ScanCancelledError, TraversalEngine

logger = logging.getLogger(__name__)


def _modified(path: Path) -> datetime | None:
    try:
        return datetime.fromtimestamp(path.lstat().st_mtime, tz=UTC)
    except OSError:
        return None


class CacheScanner:
    """Turns ScanTargets into CategoryResults.

    Targets that do not exist are skipped. A target with the expand flag
    contributes one item per direct child instead of one item for itself.
    Items of zero size are dropped, as are children whose name matches a
    protected cache name.

    Args:
        engine: Traversal engine computing sizes. Cancelling it cancels
            the scan.
        policy: Protection policy used to hide protected cache folders.
    """

    def __init__(self, engine: TraversalEngine, policy: ProtectionPolicy | None = None) -> None:
        self._engine = engine
        self._policy = policy or ProtectionPolicy()

    @property
    def engine(self) -> TraversalEngine:
        """The engine computing sizes."""
        return self._engine

    async def scan(
        self,
        targets: Iterable[ScanTarget],
        progress: ProgressCallback | None = None,
    ) -> list[CategoryResult]:
        """Measure every target and group the findings.

        Args:
            targets: Locations to examine.
            progress: Optional callback receiving (message, fraction).

        Returns:
            CategoryResults sorted by total size, largest first.

        Raises:
            ScanCancelledError: If the engine is cancelled.
        """
        target_list = list(targets)
        claimed = frozenset(target.path for target in target_list)
        items: list[DiscoveredItem] = []

        for index, target in enumerate(target_list):
            if progress is not None:
                label = target.description or target.path.name
                progress(f"Scanning {label}...", index / len(target_list))
            if not os.path.lexists(target.path):
                continue
            items.extend(await self._scan_target(target, claimed - {target.path}))

        if self._engine.cancelled:
            self._engine.reset()
            raise ScanCancelledError
        if progress is not None:
            progress("Scan complete", 1.0)
        return group_by_category(items)

    async def _scan_target(self, target: ScanTarget, others: frozenset[Path]) -> list[DiscoveredItem]:
        """Items of one target.

        Children of an expanded target that are, or contain, another
        target's path are left to that more specific target.
        """
        if not target.expand:
            item = await self._measure(target, target.path)
            return [item] if item is not None else []

        try:
            children = sorted(target.path.iterdir())
        except OSError as e:
            logger.debug("Cannot list %s: %s", target.path, e)
            return []

        items: list[DiscoveredItem] = []
        for child in children:
            if self._policy.is_protected_cache(child.name):
                logger.debug("Skipping protected cache %s", child)
                continue
            if any(other == child or child in other.parents for other in others):
                continue
            item = await self._measure(target, child)
            if item is not None:
                items.append(item)
        return items

    async def _measure(self, target: ScanTarget, path: Path) -> DiscoveredItem | None:
        size = await self._engine.directory_size(path)
        if size == 0:
            return None
        return DiscoveredItem(
            path=path,
            name=path.name,
            size=size,
            category=target.category,
            last_modified=_modified(path),
            requires_admin=target.requires_admin,
            subtitle=target.description,
        )
