"""Filesystem scanning: traversal engine, disk trees, catalog and scanners."""

from molectl.scanning.artifacts import ArtifactScanner, ArtifactType
from molectl.scanning.caches import CacheScanner
from molectl.scanning.catalog import CatalogEntry, load_targets
from molectl.scanning.installers import InstallerLocation, InstallerScanner, InstallerSource
from molectl.scanning.traversal import (
    FileEntry,
    FileListing,
    InvalidPathError,
    ProgressCallback,
    ScanCancelledError,
    TraversalEngine,
)
from molectl.scanning.tree import ChildrenState, DiskNode, DiskTree

__all__ = [
    "ArtifactScanner",
    "ArtifactType",
    "CacheScanner",
    "CatalogEntry",
    "ChildrenState",
    "DiskNode",
    "DiskTree",
    "FileEntry",
    "FileListing",
    "InstallerLocation",
    "InstallerScanner",
    "InstallerSource",
    "InvalidPathError",
    "ProgressCallback",
    "ScanCancelledError",
    "TraversalEngine",
    "load_targets",
]
