"""Discovery of project build artifacts (node_modules, target, .venv, ...).

A project tree is walked looking for directories with well-known
artifact names. A matched directory is measured as a whole and never
descended into, so nested node_modules are not reported twice.
"""

import asyncio
import logging
import os
from datetime import UTC, datetime, timedelta
from enum import Enum
from pathlib import Path

from molectl.models.items import Category, DiscoveredItem
from molectl.scanning.traversal import (
    InvalidPathError,
    ProgressCallback,
    ScanCancelledError,
    TraversalEngine,
)

logger = logging.getLogger(__name__)

# Artifacts touched this recently start out deselected
DEFAULT_RECENT_DAYS = 7


class ArtifactType(str, Enum):
    """Well-known build artifact directory names."""

    NODE_MODULES = "node_modules"
    TARGET = "target"
    BUILD = "build"
    DIST = "dist"
    DOT_BUILD = ".build"
    DERIVED_DATA = "DerivedData"
    PODS = "Pods"
    VENDOR_BUNDLE = "vendor_bundle"
    VENV = "venv"
    DOT_VENV = ".venv"
    GRADLE = ".gradle"
    PYTEST_CACHE = ".pytest_cache"
    MYPY_CACHE = ".mypy_cache"
    TOX = ".tox"
    NOX = ".nox"
    RUFF_CACHE = ".ruff_cache"
    NUXT = ".nuxt"
    DOT_OUTPUT = ".output"
    TURBO = ".turbo"
    PARCEL_CACHE = ".parcel-cache"
    ZIG_CACHE = ".zig-cache"
    ANGULAR = ".angular"
    SVELTE_KIT = ".svelte-kit"
    COVERAGE = "coverage"
    CXX = ".cxx"
    EXPO = ".expo"

    @property
    def description(self) -> str:
        """What the artifact usually contains."""
        return _DESCRIPTIONS.get(self, "Build artifact")

    @classmethod
    def detect(cls, name: str) -> "ArtifactType | None":
        """Artifact type for a directory name, if it is one."""
        try:
            return cls(name)
        except ValueError:
            return None


_DESCRIPTIONS: dict[ArtifactType, str] = {
    ArtifactType.NODE_MODULES: "Node.js dependencies",
    ArtifactType.TARGET: "Build output (Rust/Cargo/Maven)",
    ArtifactType.BUILD: "Build output directory",
    ArtifactType.DIST: "Distribution files",
    ArtifactType.DOT_BUILD: "Swift Package Manager build",
    ArtifactType.DERIVED_DATA: "Xcode derived data",
    ArtifactType.PODS: "CocoaPods dependencies",
    ArtifactType.VENDOR_BUNDLE: "Ruby bundler gems",
    ArtifactType.VENV: "Python virtual environment",
    ArtifactType.DOT_VENV: "Python virtual environment",
    ArtifactType.GRADLE: "Gradle build cache",
    ArtifactType.PYTEST_CACHE: "pytest cache",
    ArtifactType.MYPY_CACHE: "mypy cache",
    ArtifactType.TOX: "tox environments",
    ArtifactType.NOX: "nox sessions",
    ArtifactType.RUFF_CACHE: "ruff cache",
    ArtifactType.COVERAGE: "Coverage reports",
}


class ArtifactScanner:
    """Finds build artifacts beneath a project root.

    Args:
        engine: Traversal engine used for sizes and cancellation.
        recent_days: Artifacts modified within this many days are
            returned deselected.
    """

    def __init__(self, engine: TraversalEngine, *, recent_days: int = DEFAULT_RECENT_DAYS) -> None:
        self._engine = engine
        self._recent_days = recent_days

    async def scan(self, root: Path, progress: ProgressCallback | None = None) -> list[DiscoveredItem]:
        """Walk ``root`` and return its artifacts, largest first.

        Raises:
            InvalidPathError: If ``root`` is not an existing directory.
            ScanCancelledError: If the engine is cancelled.
        """
        if not root.is_dir():
            raise InvalidPathError(root)

        cutoff = datetime.now(UTC) - timedelta(days=self._recent_days)
        items: list[DiscoveredItem] = []
        top_level = self._directories(root)

        for index, directory in enumerate(top_level):
            self._check_cancelled()
            if progress is not None:
                progress(f"Scanning {directory.name}...", index / len(top_level))
            await self._walk(directory, cutoff, items)

        self._check_cancelled()
        if progress is not None:
            progress(f"Found {len(items)} artifacts", 1.0)
        items.sort(key=lambda item: item.size, reverse=True)
        return items

    async def _walk(self, start: Path, cutoff: datetime, items: list[DiscoveredItem]) -> None:
        pending = [start]
        while pending:
            self._check_cancelled()
            directory = pending.pop()
            artifact_type = ArtifactType.detect(directory.name)
            if artifact_type is not None:
                item = await self._measure(directory, artifact_type, cutoff)
                if item is not None:
                    items.append(item)
                continue
            pending.extend(self._directories(directory))
            await asyncio.sleep(0)

    async def _measure(
        self, path: Path, artifact_type: ArtifactType, cutoff: datetime
    ) -> DiscoveredItem | None:
        size = await self._engine.directory_size(path)
        if size == 0:
            return None
        try:
            modified: datetime | None = datetime.fromtimestamp(path.lstat().st_mtime, tz=UTC)
        except OSError:
            modified = None
        return DiscoveredItem(
            path=path,
            name=path.name,
            size=size,
            category=Category.PROJECT_ARTIFACTS,
            last_modified=modified,
            selected=modified is None or modified <= cutoff,
            display_name=path.parent.name,
            subtitle=artifact_type.value,
        )

    def _directories(self, path: Path) -> list[Path]:
        """Real subdirectories of ``path``; hidden ones only if they are artifacts."""
        try:
            with os.scandir(path) as it:
                entries = list(it)
        except OSError as e:
            logger.debug("Skipping unreadable directory %s: %s", path, e)
            return []

        directories: list[Path] = []
        for entry in entries:
            if entry.name.startswith(".") and ArtifactType.detect(entry.name) is None:
                continue
            try:
                if entry.is_dir(follow_symlinks=False):
                    directories.append(Path(entry.path))
            except OSError:
                continue
        return directories

    def _check_cancelled(self) -> None:
        if self._engine.cancelled:
            self._engine.reset()
            raise ScanCancelledError
