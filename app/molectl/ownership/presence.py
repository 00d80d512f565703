"""External identifier-presence lookup.

Asks the system search index whether anything carrying an identifier
exists anywhere on disk: Spotlight (``mdfind``) on macOS, the ``locate``
database elsewhere. The answer is tri-state: True (present), False
(absent) or None (inconclusive: tool missing, failed or timed out).

Hits inside the ignored folders do not count. Those are the folders being
scanned for orphans, so a candidate never vouches for itself.
"""

import logging
import sys
from collections.abc import Iterable
from pathlib import Path

from molectl.utils.shell import command_exists, run_command_async

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = frozenset("'\"\\`")


def is_safe_identifier(identifier: str) -> bool:
    """Whether an identifier may be passed to a lookup tool."""
    if not identifier:
        return False
    return not any(char in _UNSAFE_CHARS or char.isspace() or ord(char) < 32 for char in identifier)


class PresenceLookup:
    """Queries the system search index for an identifier.

    Args:
        platform: Platform name, defaults to the running OS.
        timeout: Seconds before a lookup counts as inconclusive.
        ignore: Folders whose contents never count as a match.
    """

    def __init__(
        self,
        *,
        platform: str | None = None,
        timeout: float = 10.0,
        ignore: Iterable[Path] = (),
    ) -> None:
        self._platform = platform or sys.platform
        self._timeout = timeout
        self._ignore = tuple(ignore)
        self._cache: dict[str, bool | None] = {}

    @property
    def tool(self) -> str:
        """Name of the lookup tool used on this platform."""
        return "mdfind" if self._platform == "darwin" else "locate"

    def is_available(self) -> bool:
        """Check if the lookup tool is installed."""
        return command_exists(self.tool)

    async def exists(self, identifier: str) -> bool | None:
        """Whether anything matching ``identifier`` exists on disk.

        Returns:
            True if found, False if the index has no match, None if the
            answer is inconclusive.
        """
        if identifier in self._cache:
            return self._cache[identifier]
        answer = await self._query(identifier)
        self._cache[identifier] = answer
        return answer

    async def _query(self, identifier: str) -> bool | None:
        if not is_safe_identifier(identifier):
            logger.debug("Refusing to look up unsafe identifier %r", identifier)
            return None
        if not self.is_available():
            return None

        if self._platform == "darwin":
            args = ["mdfind", f"kMDItemCFBundleIdentifier == '{identifier}'"]
        else:
            args = ["locate", "-i", "-b", identifier]

        try:
            result = await run_command_async(args, timeout=self._timeout)
        except (FileNotFoundError, OSError, TimeoutError) as e:
            logger.warning("%s lookup for %s failed: %s", self.tool, identifier, e)
            return None

        if self._platform == "darwin":
            if not result.success:
                return None
            return self._has_relevant_hit(result.output_lines())

        # locate: 0 = match, 1 = no match, anything else = error
        if result.returncode == 0:
            return self._has_relevant_hit(result.output_lines())
        if result.returncode == 1:
            return False
        logger.warning("locate exited with %d for %s", result.returncode, identifier)
        return None

    def _has_relevant_hit(self, hits: list[str]) -> bool:
        for hit in hits:
            path = Path(hit)
            if not any(path.is_relative_to(folder) for folder in self._ignore):
                return True
        return False
