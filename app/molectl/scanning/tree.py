"""Arena-backed disk usage tree.

Nodes live in a flat list and refer to each other by integer id, so a
node's children can be loaded lazily, one level at a time, without
rebuilding the tree around it.
"""

from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path


class ChildrenState(str, Enum):
    """Load state of a node's children.

    Attributes:
        UNKNOWN: Children not enumerated yet; the size is already final.
        LOADING: Enumeration in progress.
        LOADED: Children enumerated and sorted by size.
    """

    UNKNOWN = "unknown"
    LOADING = "loading"
    LOADED = "loaded"


@dataclass(slots=True)
class DiskNode:
    """One file or directory in a DiskTree.

    Attributes:
        id: Index of the node in its tree.
        path: Absolute path.
        name: Last path component.
        size: Size in bytes (recursive for directories).
        is_directory: Whether the node is a directory.
        depth: Distance from the tree root.
        parent_id: Id of the parent node, None for the root.
        last_modified: Modification time, if it could be read.
        children: Child ids, largest first once loaded.
        children_state: Load state of ``children``.
    """

    id: int
    path: Path
    name: str
    size: int
    is_directory: bool
    depth: int
    parent_id: int | None = None
    last_modified: datetime | None = None
    children: list[int] = field(default_factory=list)
    children_state: ChildrenState = ChildrenState.UNKNOWN

    @property
    def is_expandable(self) -> bool:
        """Whether the node is a directory whose children are not loaded."""
        return self.is_directory and self.children_state is ChildrenState.UNKNOWN


class DiskTree:
    """Flat arena of DiskNodes rooted at id 0."""

    def __init__(self) -> None:
        self._nodes: list[DiskNode] = []

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[DiskNode]:
        return iter(self._nodes)

    @property
    def root(self) -> DiskNode:
        """The root node.

        Raises:
            IndexError: If the tree is empty.
        """
        return self._nodes[0]

    def add(
        self,
        path: Path,
        *,
        size: int,
        is_directory: bool,
        parent_id: int | None = None,
        last_modified: datetime | None = None,
    ) -> DiskNode:
        """Append a node and link it to its parent.

        Files are created with their children marked as loaded (there are
        none); directories start out unknown.
        """
        depth = 0 if parent_id is None else self._nodes[parent_id].depth + 1
        node = DiskNode(
            id=len(self._nodes),
            path=path,
            name=path.name or str(path),
            size=size,
            is_directory=is_directory,
            depth=depth,
            parent_id=parent_id,
            last_modified=last_modified,
            children_state=ChildrenState.UNKNOWN if is_directory else ChildrenState.LOADED,
        )
        self._nodes.append(node)
        if parent_id is not None:
            self._nodes[parent_id].children.append(node.id)
        return node

    def node(self, node_id: int) -> DiskNode:
        """Look up a node by id.

        Raises:
            IndexError: If no node has that id.
        """
        if node_id < 0:
            msg = f"Invalid node id: {node_id}"
            raise IndexError(msg)
        return self._nodes[node_id]

    def children(self, node_id: int) -> list[DiskNode]:
        """Loaded children of a node, in their stored order."""
        return [self._nodes[child] for child in self._nodes[node_id].children]

    def sort_children(self, node_id: int) -> None:
        """Order a node's children by size, largest first."""
        self._nodes[node_id].children.sort(key=lambda child: self._nodes[child].size, reverse=True)

    def largest_files(self, count: int = 10) -> list[DiskNode]:
        """The biggest file nodes in the loaded part of the tree."""
        files = [node for node in self._nodes if not node.is_directory]
        files.sort(key=lambda node: node.size, reverse=True)
        return files[:count]
