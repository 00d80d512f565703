"""Unit tests for the traversal engine."""

import os
from pathlib import Path

import pytest
from molectl.scanning.traversal import InvalidPathError, ScanCancelledError, TraversalEngine
from molectl.scanning.tree import ChildrenState


def _write(path: Path, size: int) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"x" * size)
    return path


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """Small tree: 3 visible files, 1 hidden file, a symlink."""
    root = tmp_path / "project"
    _write(root / "a.bin", 100)
    _write(root / "sub" / "b.bin", 200)
    _write(root / "sub" / "deeper" / "c.bin", 300)
    _write(root / ".hidden" / "d.bin", 400)
    os.symlink(root / "sub" / "b.bin", root / "link.bin")
    return root


class TestEngineOptions:
    """Tests for engine construction."""

    def test_rejects_non_positive_yield(self) -> None:
        """yield_every must be at least 1."""
        with pytest.raises(ValueError, match="yield_every"):
            TraversalEngine(yield_every=0)


class TestDirectorySize:
    """Tests for TraversalEngine.directory_size."""

    async def test_counts_all_regular_files(self, project: Path) -> None:
        """Sizes include hidden files and ignore symlinks."""
        assert await TraversalEngine().directory_size(project) == 1000

    async def test_missing_path(self, tmp_path: Path) -> None:
        """A missing path has size 0."""
        assert await TraversalEngine().directory_size(tmp_path / "missing") == 0

    async def test_file_path(self, project: Path) -> None:
        """A regular file yields its own size."""
        assert await TraversalEngine().directory_size(project / "a.bin") == 100

    async def test_symlink_path(self, project: Path) -> None:
        """A symlink is never followed."""
        assert await TraversalEngine().directory_size(project / "link.bin") == 0

    async def test_cancel_before_call(self, project: Path) -> None:
        """A pending cancel aborts the next call and is then cleared."""
        engine = TraversalEngine(yield_every=1)
        engine.cancel()

        with pytest.raises(ScanCancelledError):
            await engine.directory_size(project)

        assert engine.cancelled is False
        assert await engine.directory_size(project) == 1000

    async def test_cancel_during_walk(self, project: Path) -> None:
        """Cancelling while the walk yields raises instead of returning a partial size."""
        engine = TraversalEngine(yield_every=1)
        original = engine._tick  # noqa: SLF001

        async def tick_then_cancel() -> None:
            engine.cancel()
            await original()

        engine._tick = tick_then_cancel  # type: ignore[method-assign]  # noqa: SLF001

        with pytest.raises(ScanCancelledError):
            await engine.directory_size(project)


class TestListFiles:
    """Tests for TraversalEngine.list_files."""

    async def test_lists_visible_files(self, project: Path) -> None:
        """Hidden entries and symlinks are excluded by default."""
        listing = await TraversalEngine().list_files(project)
        assert sorted(entry.path.name for entry in listing.files) == ["a.bin", "b.bin", "c.bin"]
        assert listing.total_size == 600

    async def test_include_hidden(self, project: Path) -> None:
        """include_hidden lists dot-entries too."""
        listing = await TraversalEngine(include_hidden=True).list_files(project)
        assert listing.total_size == 1000

    async def test_max_depth(self, project: Path) -> None:
        """Direct children are depth 1."""
        listing = await TraversalEngine().list_files(project, max_depth=1)
        assert [entry.path.name for entry in listing.files] == ["a.bin"]

    async def test_largest(self, project: Path) -> None:
        """largest returns the biggest files first."""
        listing = await TraversalEngine().list_files(project)
        assert [entry.size for entry in listing.largest(2)] == [300, 200]

    async def test_invalid_root(self, tmp_path: Path) -> None:
        """A missing root raises InvalidPathError."""
        with pytest.raises(InvalidPathError):
            await TraversalEngine().list_files(tmp_path / "missing")


class TestBuildTree:
    """Tests for TraversalEngine.build_tree."""

    async def test_tree_sizes_and_order(self, project: Path) -> None:
        """Children are sorted by size and parents sum their children."""
        tree = await TraversalEngine().build_tree(project, max_depth=3)

        root = tree.root
        children = tree.children(root.id)
        assert [child.name for child in children] == ["sub", "a.bin"]
        assert root.size == 600
        assert children[0].size == 500
        assert root.children_state is ChildrenState.LOADED

    async def test_collapsed_directories(self, project: Path) -> None:
        """Directories past max_depth carry their size but no children."""
        tree = await TraversalEngine().build_tree(project, max_depth=1)

        sub = tree.children(tree.root.id)[0]
        assert sub.name == "sub"
        assert sub.size == 500
        assert sub.children_state is ChildrenState.UNKNOWN
        assert sub.is_expandable

    async def test_zero_depth(self, project: Path) -> None:
        """max_depth 0 produces only the root with its size."""
        tree = await TraversalEngine().build_tree(project, max_depth=0)
        assert len(tree) == 1
        assert tree.root.size == 600

    async def test_progress_reported(self, project: Path) -> None:
        """The progress callback ends with a completion message."""
        calls: list[tuple[str, float]] = []
        await TraversalEngine().build_tree(project, progress=lambda m, f: calls.append((m, f)))
        assert calls[-1] == ("Scan complete", 1.0)
        assert all(0.0 <= fraction <= 1.0 for _, fraction in calls)

    async def test_expand(self, project: Path) -> None:
        """expand loads one more level below a collapsed node."""
        engine = TraversalEngine()
        tree = await engine.build_tree(project, max_depth=1)
        sub = tree.children(tree.root.id)[0]

        children = await engine.expand(tree, sub.id)

        assert [child.name for child in children] == ["deeper", "b.bin"]
        assert sub.children_state is ChildrenState.LOADED
        assert children[0].is_expandable

    async def test_expand_cancelled_leaves_node_collapsed(self, project: Path) -> None:
        """A cancelled expand reverts the node and adds no children."""
        engine = TraversalEngine()
        tree = await engine.build_tree(project, max_depth=1)
        sub = tree.children(tree.root.id)[0]
        before = len(tree)

        engine.cancel()
        with pytest.raises(ScanCancelledError):
            await engine.expand(tree, sub.id)

        assert sub.children_state is ChildrenState.UNKNOWN
        assert len(tree) == before

    async def test_largest_files(self, project: Path) -> None:
        """largest_files lists loaded file nodes by size."""
        tree = await TraversalEngine().build_tree(project, max_depth=3)
        assert [node.name for node in tree.largest_files(2)] == ["c.bin", "b.bin"]
