"""Cancellable recursive filesystem traversal.

The engine computes recursive sizes, flat file listings and depth-limited
disk usage trees. It is cooperative:

- a cancellation flag is checked at every directory entry and every
  recursion step, and a cancelled call raises ScanCancelledError instead
  of returning a partial result;
- control is handed back to the event loop every ``yield_every``
  processed entries so long scans do not starve other tasks.

Symbolic links are never followed and only regular files contribute to
sizes. Entries that cannot be read (permission races, concurrent
deletion) are skipped and count as zero.
"""

import asyncio
import logging
import os
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

from molectl.scanning.tree import ChildrenState, DiskNode, DiskTree

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, float], None]


class ScanCancelledError(Exception):
    """Raised when a scan observes a cancellation request."""

    def __init__(self, message: str = "Scan was cancelled") -> None:
        super().__init__(message)


class InvalidPathError(Exception):
    """Raised when a scan root does not exist or is not a directory."""

    def __init__(self, path: Path | str) -> None:
        self.path = str(path)
        super().__init__(f"Invalid path: {path}")


@dataclass(frozen=True, slots=True)
class FileEntry:
    """A regular file found by :meth:`TraversalEngine.list_files`."""

    path: Path
    size: int
    last_modified: datetime | None = None


@dataclass(slots=True)
class FileListing:
    """Flat listing of regular files beneath a root.

    Attributes:
        files: Files in enumeration order.
        total_size: Sum of all file sizes.
    """

    files: list[FileEntry] = field(default_factory=list)
    total_size: int = 0

    def largest(self, count: int = 10) -> list[FileEntry]:
        """The ``count`` biggest files, largest first."""
        return sorted(self.files, key=lambda entry: entry.size, reverse=True)[:count]


def _mtime(entry: os.DirEntry[str]) -> datetime | None:
    try:
        return datetime.fromtimestamp(entry.stat(follow_symlinks=False).st_mtime, tz=UTC)
    except OSError:
        return None


class TraversalEngine:
    """Cooperative, cancellable directory walker.

    An engine serves one logical call at a time. :meth:`cancel` marks the
    running call (or, if none is running, the next one) as cancelled; the
    flag is cleared whenever a public call finishes.

    Args:
        include_hidden: Include dot-entries in listings and trees.
            Recursive sizes always count hidden files because they are
            freed together with their parent.
        yield_every: Processed entries between event-loop yields.
    """

    def __init__(self, *, include_hidden: bool = False, yield_every: int = 100) -> None:
        if yield_every < 1:
            msg = f"yield_every must be positive, got {yield_every}"
            raise ValueError(msg)
        self._include_hidden = include_hidden
        self._yield_every = yield_every
        self._cancelled = False
        self._processed = 0

    @property
    def cancelled(self) -> bool:
        """Whether a cancellation has been requested."""
        return self._cancelled

    def cancel(self) -> None:
        """Request cancellation of the running call."""
        self._cancelled = True

    def reset(self) -> None:
        """Clear a pending cancellation request."""
        self._cancelled = False
        self._processed = 0

    async def directory_size(self, path: Path) -> int:
        """Total size of all regular files beneath ``path``.

        A regular file passed as ``path`` yields its own size; a missing
        path yields 0.

        Raises:
            ScanCancelledError: If cancelled before completion.
        """
        try:
            return await self._size_of(path, count_hidden=True)
        finally:
            self.reset()

    async def list_files(self, path: Path, max_depth: int = 10) -> FileListing:
        """List regular files beneath ``path`` down to ``max_depth`` levels.

        Files directly inside ``path`` are at depth 1.

        Raises:
            InvalidPathError: If ``path`` is not an existing directory.
            ScanCancelledError: If cancelled before completion.
        """
        try:
            self._require_directory(path)
            listing = FileListing()
            pending: list[tuple[Path, int]] = [(path, 1)]
            while pending:
                self._check_cancelled()
                current, depth = pending.pop()
                for entry in self._scan(current):
                    await self._tick()
                    if self._skip_hidden(entry):
                        continue
                    try:
                        if entry.is_dir(follow_symlinks=False):
                            if depth < max_depth:
                                pending.append((Path(entry.path), depth + 1))
                        elif entry.is_file(follow_symlinks=False):
                            size = entry.stat(follow_symlinks=False).st_size
                            listing.files.append(FileEntry(Path(entry.path), size, _mtime(entry)))
                            listing.total_size += size
                    except OSError as e:
                        logger.debug("Skipping unreadable entry %s: %s", entry.path, e)
            self._check_cancelled()
            return listing
        finally:
            self.reset()

    async def build_tree(
        self,
        path: Path,
        max_depth: int = 3,
        progress: ProgressCallback | None = None,
    ) -> DiskTree:
        """Build a disk usage tree rooted at ``path``.

        Directories down to ``max_depth`` levels are enumerated; deeper
        directories become a single node carrying their recursive size
        with children left unknown, ready for :meth:`expand`. Children are
        sorted by size, largest first, once their directory completes.

        Args:
            path: Root directory.
            max_depth: Number of levels to enumerate below the root.
            progress: Optional callback receiving (message, fraction).

        Raises:
            InvalidPathError: If ``path`` is not an existing directory.
            ScanCancelledError: If cancelled before completion.
        """
        try:
            self._require_directory(path)
            tree = DiskTree()
            root = tree.add(path, size=0, is_directory=True)
            if max_depth < 1:
                root.size = await self._size_of(path, count_hidden=self._include_hidden)
            else:
                await self._load(tree, root.id, max_depth, progress)
            self._check_cancelled()
            if progress is not None:
                progress("Scan complete", 1.0)
            return tree
        finally:
            self.reset()

    async def expand(self, tree: DiskTree, node_id: int) -> list[DiskNode]:
        """Load one more level below a collapsed directory node.

        Already loaded nodes and files return their current children. If
        the call is cancelled the node is left collapsed.

        Raises:
            ScanCancelledError: If cancelled before completion.
        """
        node = tree.node(node_id)
        try:
            if not node.is_expandable:
                return tree.children(node_id)
            node.children_state = ChildrenState.LOADING
            try:
                await self._load(tree, node_id, 1, None)
            except BaseException:
                node.children_state = ChildrenState.UNKNOWN
                raise
            return tree.children(node_id)
        finally:
            self.reset()

    async def _load(
        self,
        tree: DiskTree,
        node_id: int,
        levels: int,
        progress: ProgressCallback | None,
    ) -> None:
        """Enumerate ``levels`` levels below a node and settle its size.

        Child data is collected before any node is added, so a cancelled
        load leaves the tree unchanged.
        """
        self._check_cancelled()
        parent = tree.node(node_id)
        collected: list[tuple[Path, int, bool, datetime | None]] = []
        entries = [entry for entry in self._scan(parent.path) if not self._skip_hidden(entry)]

        for index, entry in enumerate(entries):
            await self._tick()
            if progress is not None:
                progress(f"Scanning {entry.name}...", index / len(entries))
            child_path = Path(entry.path)
            try:
                if entry.is_dir(follow_symlinks=False):
                    is_directory = True
                elif entry.is_file(follow_symlinks=False):
                    is_directory = False
                else:
                    continue
            except OSError:
                continue
            modified = _mtime(entry)
            if is_directory:
                # Size of collapsed directories; loaded ones are re-summed below
                size = 0 if levels > 1 else await self._size_of(child_path, count_hidden=self._include_hidden)
            else:
                try:
                    size = entry.stat(follow_symlinks=False).st_size
                except OSError:
                    continue
            collected.append((child_path, size, is_directory, modified))

        self._check_cancelled()
        for child_path, size, is_directory, modified in collected:
            child = tree.add(
                child_path,
                size=size,
                is_directory=is_directory,
                parent_id=node_id,
                last_modified=modified,
            )
            if is_directory and levels > 1:
                await self._load(tree, child.id, levels - 1, None)

        parent.size = sum(child.size for child in tree.children(node_id))
        tree.sort_children(node_id)
        parent.children_state = ChildrenState.LOADED

    async def _size_of(self, root: Path, *, count_hidden: bool) -> int:
        """Recursive size of regular files, walking with an explicit stack."""
        self._check_cancelled()
        try:
            if root.is_symlink():
                return 0
            if root.is_file():
                return root.stat().st_size
        except OSError:
            return 0

        total = 0
        pending = [root]
        while pending:
            self._check_cancelled()
            current = pending.pop()
            for entry in self._scan(current):
                await self._tick()
                if not count_hidden and entry.name.startswith("."):
                    continue
                try:
                    if entry.is_dir(follow_symlinks=False):
                        pending.append(Path(entry.path))
                    elif entry.is_file(follow_symlinks=False):
                        total += entry.stat(follow_symlinks=False).st_size
                except OSError as e:
                    logger.debug("Skipping unreadable entry %s: %s", entry.path, e)
        self._check_cancelled()
        return total

    def _scan(self, path: Path) -> list[os.DirEntry[str]]:
        """Entries of one directory; unreadable directories yield nothing."""
        try:
            with os.scandir(path) as it:
                return list(it)
        except OSError as e:
            logger.debug("Skipping unreadable directory %s: %s", path, e)
            return []

    def _skip_hidden(self, entry: os.DirEntry[str]) -> bool:
        return not self._include_hidden and entry.name.startswith(".")

    def _require_directory(self, path: Path) -> None:
        if not path.is_dir():
            raise InvalidPathError(path)

    def _check_cancelled(self) -> None:
        if self._cancelled:
            raise ScanCancelledError

    async def _tick(self) -> None:
        """Count one processed entry, yielding to the loop periodically."""
        self._check_cancelled()
        self._processed += 1
        if self._processed % self._yield_every == 0:
            await asyncio.sleep(0)
            self._check_cancelled()

