"""Unit tests for the build artifact scanner."""

import os
import time
from pathlib import Path

import pytest
from molectl.models.items import Category
from molectl.scanning.artifacts import ArtifactScanner, ArtifactType
from molectl.scanning.traversal import InvalidPathError, ScanCancelledError, TraversalEngine


def _write(path: Path, size: int) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"x" * size)
    return path


def _age(path: Path, days: int) -> None:
    stamp = time.time() - days * 86400
    os.utime(path, (stamp, stamp))


@pytest.fixture
def projects(tmp_path: Path) -> Path:
    root = tmp_path / "code"
    _write(root / "web" / "node_modules" / "react" / "index.js", 500)
    _write(root / "web" / "node_modules" / "react" / "node_modules" / "x" / "y.js", 100)
    _write(root / "web" / "src" / "app.js", 50)
    _write(root / "api" / ".venv" / "lib" / "site.py", 300)
    _write(root / "api" / ".git" / "node_modules" / "z.js", 999)
    (root / "empty" / "dist").mkdir(parents=True)
    for artifact in (root / "web" / "node_modules", root / "api" / ".venv"):
        _age(artifact, 30)
    return root


class TestArtifactType:
    """Tests for ArtifactType."""

    def test_detect(self) -> None:
        """detect maps known directory names."""
        assert ArtifactType.detect("node_modules") is ArtifactType.NODE_MODULES
        assert ArtifactType.detect(".venv") is ArtifactType.DOT_VENV
        assert ArtifactType.detect("src") is None

    def test_descriptions(self) -> None:
        """Every type has a description."""
        assert all(artifact.description for artifact in ArtifactType)


class TestArtifactScanner:
    """Tests for ArtifactScanner.scan."""

    async def test_finds_artifacts(self, projects: Path) -> None:
        """Artifacts are measured whole, largest first, without nested duplicates."""
        items = await ArtifactScanner(TraversalEngine()).scan(projects)

        assert [(item.display_name, item.subtitle) for item in items] == [
            ("web", "node_modules"),
            ("api", ".venv"),
        ]
        assert items[0].size == 600
        assert all(item.category is Category.PROJECT_ARTIFACTS for item in items)

    async def test_skips_hidden_non_artifacts(self, projects: Path) -> None:
        """Hidden folders such as .git are not searched."""
        items = await ArtifactScanner(TraversalEngine()).scan(projects)
        assert all(".git" not in item.path.parts for item in items)

    async def test_old_artifacts_selected(self, projects: Path) -> None:
        """Artifacts untouched for longer than the threshold are selected."""
        items = await ArtifactScanner(TraversalEngine()).scan(projects)
        assert all(item.selected for item in items)

    async def test_recent_artifacts_deselected(self, projects: Path) -> None:
        """Recently modified artifacts start out deselected."""
        _age(projects / "web" / "node_modules", 1)

        items = await ArtifactScanner(TraversalEngine()).scan(projects)

        selection = {item.display_name: item.selected for item in items}
        assert selection == {"web": False, "api": True}

    async def test_invalid_root(self, tmp_path: Path) -> None:
        """A missing root raises InvalidPathError."""
        with pytest.raises(InvalidPathError):
            await ArtifactScanner(TraversalEngine()).scan(tmp_path / "missing")

    async def test_cancelled(self, projects: Path) -> None:
        """A cancelled engine aborts the scan and is reset."""
        engine = TraversalEngine()
        engine.cancel()

        with pytest.raises(ScanCancelledError):
            await ArtifactScanner(engine).scan(projects)

        assert engine.cancelled is False
