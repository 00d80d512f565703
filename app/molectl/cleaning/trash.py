"""Access to the user's system trash.

Items are moved to the trash with send2trash, so every ordinary clean is
recoverable. Emptying the trash is the only permanent removal of trashed
data.
"""

import asyncio
import logging
import shutil
import sys
from pathlib import Path

from send2trash import send2trash

from molectl.scanning.traversal import TraversalEngine

logger = logging.getLogger(__name__)


def default_trash_dirs() -> tuple[Path, ...]:
    """Directories holding trashed data for the current user.

    macOS keeps trashed items directly in ~/.Trash. The freedesktop trash
    keeps the payload in ``files`` and the restore metadata in ``info``.
    """
    if sys.platform == "darwin":
        return (Path.home() / ".Trash",)
    base = Path.home() / ".local" / "share" / "Trash"
    return (base / "files", base / "info")


class TrashBin:
    """Moves items to the trash and inspects or empties it.

    Args:
        engine: Traversal engine used to measure the trash.
        trash_dirs: Override the trash directories. The first one holds
            the trashed items themselves.
    """

    def __init__(
        self,
        engine: TraversalEngine | None = None,
        trash_dirs: tuple[Path, ...] | None = None,
    ) -> None:
        self._engine = engine or TraversalEngine(include_hidden=True)
        self._dirs = trash_dirs if trash_dirs is not None else default_trash_dirs()

    @property
    def location(self) -> Path:
        """Directory holding the trashed items."""
        return self._dirs[0]

    async def move_to_trash(self, path: Path) -> None:
        """Move ``path`` to the trash without blocking the event loop.

        Raises:
            PermissionError: If the OS denies the move.
            OSError: If the move fails for any other reason.
        """
        await asyncio.to_thread(send2trash, str(path))
        logger.debug("Moved to trash: %s", path)

    async def size(self) -> int:
        """Total size of all trashed items."""
        return await self._engine.directory_size(self.location)

    def item_count(self) -> int:
        """Number of top-level items in the trash."""
        try:
            return sum(1 for _ in self.location.iterdir())
        except OSError:
            return 0

    async def empty(self) -> int:
        """Permanently delete everything in the trash.

        Returns:
            Bytes freed, measured before removal.

        Raises:
            OSError: If an entry cannot be removed.
        """
        freed = await self.size()
        for directory in self._dirs:
            if not directory.is_dir():
                continue
            await asyncio.to_thread(_clear_directory, directory)
        logger.info("Emptied trash (%d bytes)", freed)
        return freed


def _clear_directory(directory: Path) -> None:
    for entry in directory.iterdir():
        if entry.is_dir() and not entry.is_symlink():
            shutil.rmtree(entry)
        else:
            entry.unlink()
