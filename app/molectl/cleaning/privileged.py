"""Privilege-escalated batch removal.

Items needing administrator rights are removed in fixed-size batches,
each through a single elevated ``rm -rf`` call. A batch either fully
succeeds or is reported as failed for every member.
"""

import logging
import shlex
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from typing import TypeVar

from molectl.core.config import ElevationMethod
from molectl.utils.shell import command_exists, run_command_async

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_BATCH_SIZE = 10


def batched(items: Sequence[T], size: int) -> Iterator[list[T]]:
    """Split ``items`` into consecutive groups of at most ``size``."""
    if size < 1:
        msg = f"Batch size must be positive, got {size}"
        raise ValueError(msg)
    for start in range(0, len(items), size):
        yield list(items[start : start + size])


@dataclass(frozen=True, slots=True)
class BatchResult:
    """Outcome of one elevated removal call.

    Attributes:
        paths: Paths in the batch.
        success: Whether the elevated call succeeded.
        detail: Failure description, None on success.
    """

    paths: tuple[str, ...]
    success: bool
    detail: str | None = None


def _applescript_string(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def build_command(paths: Sequence[str], method: ElevationMethod) -> list[str]:
    """Argument vector removing ``paths`` with elevated rights.

    Args:
        paths: Absolute paths to remove.
        method: ``"sudo"`` or ``"osascript"`` (macOS authorisation dialog).
    """
    if method == "osascript":
        shell = "rm -rf -- " + " ".join(shlex.quote(p) for p in paths)
        script = f"do shell script {_applescript_string(shell)} with administrator privileges"
        return ["osascript", "-e", script]
    return ["sudo", "rm", "-rf", "--", *paths]


class PrivilegedRemover:
    """Runs elevated removals.

    Args:
        method: How elevation is obtained.
        timeout: Seconds to wait for one batch, including the password
            prompt.
    """

    def __init__(self, method: ElevationMethod = "sudo", timeout: float = 300.0) -> None:
        self._method = method
        self._timeout = timeout

    @property
    def method(self) -> ElevationMethod:
        """Elevation method in use."""
        return self._method

    async def remove(self, paths: Sequence[str]) -> BatchResult:
        """Remove one batch of paths with a single elevated call.

        Never raises: a missing tool, a refused or cancelled elevation, a
        timeout or a non-zero exit all produce a failed BatchResult.
        """
        batch = tuple(paths)
        tool = "osascript" if self._method == "osascript" else "sudo"
        if not command_exists(tool):
            return BatchResult(batch, success=False, detail=f"{tool} not available")

        try:
            result = await run_command_async(build_command(batch, self._method), timeout=self._timeout)
        except TimeoutError:
            logger.warning("Elevated removal timed out after %.0fs", self._timeout)
            return BatchResult(batch, success=False, detail="elevation timed out")
        except OSError as e:
            logger.warning("Elevated removal could not start: %s", e)
            return BatchResult(batch, success=False, detail=str(e))

        if not result.success:
            detail = result.stderr.strip() or f"exit code {result.returncode}"
            logger.error("Elevated removal of %d paths failed: %s", len(batch), detail)
            return BatchResult(batch, success=False, detail=detail)
        return BatchResult(batch, success=True)
