"""Deletion orchestration.

Every selected item passes the same gate, in order:

1. path-injection check (traversal sequences, control characters);
2. protected-path whitelist;
3. running-owner check (optional), a recorded skip rather than an error;
4. dry run, which counts the item and stops there;
5. removal: ordinary items are moved to the trash one by one, items
   needing administrator rights are collected and removed in elevated
   batches afterwards.

One item's failure never aborts the others, and each processed item
produces exactly one operation log line.
"""

import asyncio
import logging
import shutil
from collections.abc import Iterable, Sequence
from pathlib import Path

from molectl.cleaning.privileged import DEFAULT_BATCH_SIZE, PrivilegedRemover, batched
from molectl.cleaning.trash import TrashBin
from molectl.core.oplog import OperationKind, OperationLog
from molectl.models.items import CategoryResult, DiscoveredItem
from molectl.models.outcome import (
    DeletionOutcome,
    access_denied_error,
    deletion_failed_error,
    protected_path_error,
)
from molectl.ownership.running import RunningOwnerDetector
from molectl.policy.whitelist import ProtectionPolicy, contains_path_injection

logger = logging.getLogger(__name__)


class ProtectedPathError(Exception):
    """Raised when a single-path removal targets a protected path."""

    def __init__(self, path: Path | str) -> None:
        self.path = str(path)
        super().__init__(f"Cannot delete protected path: {path}")


class DeletionOrchestrator:
    """Coordinates protection checks and removal of selected items.

    Args:
        policy: Protection policy consulted for every item.
        log: Operation log receiving one line per processed item.
        trash: Trash used for ordinary removals.
        remover: Elevated remover for admin-required items.
        detector: Running-owner detector. Its snapshot is refreshed once
            per clean call when running owners are skipped.
        admin_batch_size: Paths per elevated call.
        skip_running: Default for skipping items whose owner is running.
    """

    def __init__(
        self,
        policy: ProtectionPolicy,
        log: OperationLog,
        *,
        trash: TrashBin | None = None,
        remover: PrivilegedRemover | None = None,
        detector: RunningOwnerDetector | None = None,
        admin_batch_size: int = DEFAULT_BATCH_SIZE,
        skip_running: bool = True,
    ) -> None:
        if admin_batch_size < 1:
            msg = f"admin_batch_size must be positive, got {admin_batch_size}"
            raise ValueError(msg)
        self._policy = policy
        self._log = log
        self._trash = trash or TrashBin()
        self._remover = remover or PrivilegedRemover()
        self._detector = detector or RunningOwnerDetector()
        self._admin_batch_size = admin_batch_size
        self._skip_running = skip_running

    async def clean(
        self,
        items: Iterable[DiscoveredItem],
        *,
        dry_run: bool = False,
        skip_running: bool | None = None,
    ) -> DeletionOutcome:
        """Clean the selected items among ``items``.

        Args:
            items: Candidate items; deselected ones are ignored.
            dry_run: Run every check but remove nothing.
            skip_running: Override the default running-owner skip.

        Returns:
            Aggregated counts, bytes, errors and running skips.
        """
        skip = self._skip_running if skip_running is None else skip_running
        if skip:
            await self._detector.refresh()
        return await self._clean_items(
            [item for item in items if item.selected], dry_run=dry_run, skip_running=skip
        )

    async def clean_categories(
        self,
        results: Iterable[CategoryResult],
        *,
        dry_run: bool = False,
        skip_running: bool | None = None,
    ) -> DeletionOutcome:
        """Clean the selected items of several categories.

        The result is the merge of the per-category outcomes, in input
        order.
        """
        skip = self._skip_running if skip_running is None else skip_running
        if skip:
            await self._detector.refresh()
        outcomes = [
            await self._clean_items(result.selected_items, dry_run=dry_run, skip_running=skip)
            for result in results
        ]
        return DeletionOutcome.merge(outcomes)

    async def delete_permanently(self, path: Path, size: int | None = None) -> None:
        """Remove one path immediately, bypassing the trash.

        Raises:
            ProtectedPathError: If the path is malformed or protected.
            OSError: If the removal fails.
        """
        if self._policy.rejects(path):
            raise ProtectedPathError(path)

        try:
            await asyncio.to_thread(_remove_path, path)
        except OSError:
            await self._log.log(OperationKind.PERMANENT_DELETE, str(path), size=size, success=False)
            raise
        await self._log.log(OperationKind.PERMANENT_DELETE, str(path), size=size)

    async def empty_trash(self) -> int:
        """Permanently empty the trash.

        Returns:
            Bytes freed.

        Raises:
            OSError: If an entry cannot be removed.
        """
        try:
            freed = await self._trash.empty()
        except OSError:
            await self._log.log(OperationKind.EMPTY_TRASH, str(self._trash.location), success=False)
            raise
        await self._log.log(OperationKind.EMPTY_TRASH, str(self._trash.location), size=freed)
        return freed

    async def _clean_items(
        self,
        items: Sequence[DiscoveredItem],
        *,
        dry_run: bool,
        skip_running: bool,
    ) -> DeletionOutcome:
        outcome = DeletionOutcome()
        admin_items: list[DiscoveredItem] = []

        for item in items:
            path = str(item.path)

            if contains_path_injection(path):
                outcome.errors.append(protected_path_error(path))
                await self._log.log(OperationKind.SKIP_TRAVERSAL, path, success=False)
                continue

            if self._policy.is_protected_path(path):
                outcome.errors.append(protected_path_error(path))
                await self._log.log(OperationKind.SKIP_PROTECTED, path, success=False)
                continue

            if skip_running:
                owner = self._detector.running_owner(path)
                if owner is not None:
                    logger.info("Skipping %s: %s is running", path, owner)
                    outcome.skipped_running.append(path)
                    await self._log.log(OperationKind.SKIP_RUNNING, path)
                    continue

            if dry_run:
                outcome.record_deleted(item.size)
                await self._log.log(OperationKind.DRY_RUN, path, size=item.size)
                continue

            if item.requires_admin:
                admin_items.append(item)
                continue

            await self._trash_item(item, outcome)

        if admin_items:
            await self._remove_elevated(admin_items, outcome)
        return outcome

    async def _trash_item(self, item: DiscoveredItem, outcome: DeletionOutcome) -> None:
        path = str(item.path)
        try:
            await self._trash.move_to_trash(item.path)
        except PermissionError as e:
            logger.error("Permission denied moving %s to trash: %s", path, e)
            outcome.errors.append(access_denied_error(path))
            await self._log.log(OperationKind.DELETE, path, success=False)
        except OSError as e:
            logger.error("Failed to move %s to trash: %s", path, e)
            outcome.errors.append(deletion_failed_error(path, str(e)))
            await self._log.log(OperationKind.DELETE, path, success=False)
        else:
            outcome.record_deleted(item.size)
            await self._log.log(OperationKind.DELETE, path, size=item.size)

    async def _remove_elevated(self, items: list[DiscoveredItem], outcome: DeletionOutcome) -> None:
        for batch in batched(items, self._admin_batch_size):
            result = await self._remover.remove([str(item.path) for item in batch])
            for item in batch:
                path = str(item.path)
                if result.success:
                    outcome.record_deleted(item.size)
                    await self._log.log(OperationKind.ADMIN_DELETE, path, size=item.size)
                else:
                    outcome.errors.append(access_denied_error(path, result.detail))
                    await self._log.log(OperationKind.ADMIN_DELETE, path, size=item.size, success=False)


def _remove_path(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink()
