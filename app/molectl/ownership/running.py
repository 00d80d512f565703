"""Detection of running applications that own a candidate path.

A cache or support folder is attributed to an application by looking for
a reverse-domain identifier among its path components (for example
``~/Library/Caches/com.tinyspeck.slackmacgap``). Folders that do not
follow that convention are resolved through a small static alias table.
The table is best-effort: applications missing from it are never
detected as running owners.
"""

import asyncio
import logging
import plistlib
import subprocess
import sys
from collections.abc import Callable, Iterable, Mapping
from pathlib import Path

import psutil

from molectl.utils.shell import command_exists, run_command

logger = logging.getLogger(__name__)

# Well-known folders whose name is not an application identifier.
# Values hold the macOS bundle id and the Linux process/app id.
FOLDER_ALIASES: dict[str, tuple[str, ...]] = {
    "Google": ("com.google.Chrome", "chrome"),
    "google-chrome": ("com.google.Chrome", "chrome"),
    "Chrome": ("com.google.Chrome", "chrome"),
    "Firefox": ("org.mozilla.firefox", "firefox"),
    "mozilla": ("org.mozilla.firefox", "firefox"),
    "Microsoft Edge": ("com.microsoft.edgemac", "msedge"),
    "microsoft-edge": ("com.microsoft.edgemac", "msedge"),
    "Slack": ("com.tinyspeck.slackmacgap", "slack"),
    "discord": ("com.hnc.Discord", "discord"),
    "Spotify": ("com.spotify.client", "spotify"),
    "spotify": ("com.spotify.client", "spotify"),
    "Code": ("com.microsoft.VSCode", "code"),
    "zoom.us": ("us.zoom.xos", "zoom"),
    "JetBrains": ("com.jetbrains.intellij", "idea"),
    "Homebrew": ("brew",),
    "pip": ("pip",),
}


def extract_identifier(path: Path | str) -> str | None:
    """Find a reverse-domain identifier among the components of a path.

    Components are examined from the deepest upwards. A component counts
    as an identifier when it has at least three dot-separated parts and
    the first part is at least two characters long.

    Args:
        path: Candidate path.

    Returns:
        The deepest identifier-like component, or None.
    """
    for component in reversed(str(path).split("/")):
        parts = component.split(".")
        if len(parts) >= 3 and len(parts[0]) >= 2:
            return component
    return None


def owner_identifiers(
    path: Path | str,
    aliases: Mapping[str, tuple[str, ...]] = FOLDER_ALIASES,
) -> tuple[str, ...]:
    """Identifiers of the applications presumed to own ``path``.

    Returns:
        The extracted identifier, else the alias-table identifiers of the
        deepest mapped folder, else an empty tuple.
    """
    identifier = extract_identifier(path)
    if identifier is not None:
        return (identifier,)
    for component in reversed(str(path).split("/")):
        if component in aliases:
            return aliases[component]
    return ()


def read_bundle_identifier(bundle: Path) -> str | None:
    """CFBundleIdentifier of an ``.app`` bundle, or None if unreadable."""
    try:
        with open(bundle / "Contents" / "Info.plist", "rb") as f:
            info = plistlib.load(f)
    except (OSError, plistlib.InvalidFileException, ValueError):
        return None
    value = info.get("CFBundleIdentifier")
    return value if isinstance(value, str) and value else None


def _bundle_identifier(executable: str, cache: dict[Path, str | None]) -> str | None:
    """Bundle id of the ``.app`` bundle an executable lives in, if any."""
    for parent in Path(executable).parents:
        if parent.suffix == ".app":
            if parent not in cache:
                cache[parent] = read_bundle_identifier(parent)
            return cache[parent]
    return None


def _flatpak_running() -> set[str]:
    if not command_exists("flatpak"):
        return set()
    try:
        result = run_command(["flatpak", "ps", "--columns=application"], timeout=10.0)
    except (FileNotFoundError, OSError, subprocess.TimeoutExpired) as e:
        logger.warning("Cannot list running flatpak apps: %s", e)
        return set()
    if not result.success:
        return set()
    return set(result.output_lines())


def collect_running_ids() -> frozenset[str]:
    """Snapshot the identifiers of currently running applications.

    Includes every process name, the bundle identifier of any process
    running from inside a ``.app`` bundle, and running flatpak app ids on
    Linux. Processes that vanish or deny access are ignored.
    """
    identifiers: set[str] = set()
    bundle_cache: dict[Path, str | None] = {}

    for proc in psutil.process_iter(["name", "exe"]):
        try:
            name = proc.info.get("name")
            exe = proc.info.get("exe")
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            continue
        if name:
            identifiers.add(name)
        if exe and ".app/" in exe:
            bundle_id = _bundle_identifier(exe, bundle_cache)
            if bundle_id:
                identifiers.add(bundle_id)

    if sys.platform != "darwin":
        identifiers |= _flatpak_running()

    logger.debug("Collected %d running application identifiers", len(identifiers))
    return frozenset(identifiers)


class RunningOwnerDetector:
    """Cross-references paths against the set of running applications.

    Args:
        running_ids: Initial snapshot of running identifiers. When None,
            call :meth:`refresh` before querying.
        aliases: Folder-name alias table.
        source: Callable producing a fresh snapshot for :meth:`refresh`.
    """

    def __init__(
        self,
        running_ids: Iterable[str] | None = None,
        aliases: Mapping[str, tuple[str, ...]] = FOLDER_ALIASES,
        source: Callable[[], Iterable[str]] = collect_running_ids,
    ) -> None:
        self._aliases = aliases
        self._source = source
        self._running: frozenset[str] = frozenset()
        self._folded: frozenset[str] = frozenset()
        if running_ids is not None:
            self.update(running_ids)

    @property
    def running_ids(self) -> frozenset[str]:
        """The current snapshot of running identifiers."""
        return self._running

    def update(self, running_ids: Iterable[str]) -> None:
        """Replace the running-identifier snapshot."""
        self._running = frozenset(running_ids)
        self._folded = frozenset(identifier.casefold() for identifier in self._running)

    async def refresh(self) -> frozenset[str]:
        """Take a fresh snapshot of running applications off the event loop."""
        self.update(await asyncio.to_thread(self._source))
        return self._running

    def running_owner(self, path: Path | str) -> str | None:
        """Identifier of a running application owning ``path``, if any."""
        for identifier in owner_identifiers(path, self._aliases):
            if identifier.casefold() in self._folded:
                return identifier
        return None

    def is_owner_running(self, path: Path | str) -> bool:
        """Whether an application owning ``path`` is running."""
        return self.running_owner(path) is not None
