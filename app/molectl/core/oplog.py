"""Durable, size-rotated operation log.

Every clean attempt is appended as one human-readable line:

    [2026-01-01T12:00:00Z] OK DELETE: /Users/me/Library/Caches/com.example.App [50.0 MB]

Once the log grows past its size ceiling it is moved to a single backup
slot (operations.log.1, replacing any previous backup) and a fresh log is
started.
"""

import asyncio
import logging
import os
import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path

from molectl.core.config import DEFAULT_LOG_MAX_BYTES
from molectl.core.paths import ensure_dir, get_operations_log_path
from molectl.utils.formatting import format_size

logger = logging.getLogger(__name__)

BACKUP_SUFFIX = ".1"


class OperationKind(str, Enum):
    """Kind of operation recorded in the log."""

    DELETE = "DELETE"
    DRY_RUN = "DRY-RUN"
    ADMIN_DELETE = "ADMIN-DELETE"
    PERMANENT_DELETE = "PERMANENT-DELETE"
    EMPTY_TRASH = "EMPTY-TRASH"
    SKIP_PROTECTED = "SKIP-PROTECTED"
    SKIP_TRAVERSAL = "SKIP-TRAVERSAL"
    SKIP_RUNNING = "SKIP-RUNNING"


@dataclass(frozen=True, slots=True)
class LogEntry:
    """A single operation log record.

    Attributes:
        operation: What was attempted.
        path: Affected path.
        size: Size in bytes, if known.
        success: Whether the operation succeeded.
        timestamp: When the operation completed (UTC).
    """

    operation: OperationKind
    path: str
    size: int | None = None
    success: bool = True
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def format_line(self) -> str:
        """Render the entry as a log line (no trailing newline)."""
        stamp = self.timestamp.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")
        status = "OK" if self.success else "FAIL"
        size = f" [{format_size(self.size)}]" if self.size is not None else ""
        return f"[{stamp}] {status} {self.operation.value}: {self.path}{size}"


class OperationLog:
    """Append-only operation log with single-backup rotation.

    All writes go through one lock-guarded writer, so entries from
    concurrent callers never interleave. Entries appear in completion
    order.

    Args:
        path: Log file location. Defaults to ~/.config/molectl/operations.log.
        max_bytes: Size ceiling that triggers rotation.
    """

    def __init__(self, path: Path | None = None, max_bytes: int = DEFAULT_LOG_MAX_BYTES) -> None:
        self._path = path if path is not None else get_operations_log_path()
        self._max_bytes = max_bytes
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        """Path of the active log file."""
        return self._path

    @property
    def backup_path(self) -> Path:
        """Path of the single rotated generation."""
        return self._path.with_name(self._path.name + BACKUP_SUFFIX)

    def append(self, entry: LogEntry) -> None:
        """Append one entry, creating the directory first and rotating after.

        Raises:
            RuntimeError: If the log directory cannot be created.
            OSError: If the file cannot be written.
        """
        line = entry.format_line() + "\n"
        with self._lock:
            ensure_dir(self._path.parent, "operation log")
            with self._path.open(mode="a", encoding="utf-8") as f:
                f.write(line)
                f.flush()
            self._rotate_if_needed()

    async def record(self, entry: LogEntry) -> None:
        """Append an entry without blocking the event loop.

        Write failures are reported through logging; a broken audit log
        must not abort a clean that is already under way.
        """
        try:
            await asyncio.to_thread(self.append, entry)
        except (OSError, RuntimeError) as e:
            logger.error("Could not write operation log %s: %s", self._path, e)

    async def log(
        self,
        operation: OperationKind,
        path: str,
        *,
        size: int | None = None,
        success: bool = True,
    ) -> None:
        """Convenience wrapper building a LogEntry and recording it."""
        await self.record(LogEntry(operation=operation, path=path, size=size, success=success))

    def recent(self, count: int = 100) -> list[str]:
        """Return the most recent ``count`` non-empty lines, oldest first."""
        if count <= 0:
            return []
        try:
            content = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        lines = [line for line in content.splitlines() if line]
        return lines[-count:]

    def clear(self) -> None:
        """Delete the active log file."""
        with self._lock:
            self._path.unlink(missing_ok=True)

    def _rotate_if_needed(self) -> None:
        """Move the log to the backup slot once it exceeds the ceiling."""
        try:
            size = self._path.stat().st_size
        except FileNotFoundError:
            return
        if size <= self._max_bytes:
            return

        logger.debug("Rotating operation log (%d bytes)", size)
        os.replace(self._path, self.backup_path)
