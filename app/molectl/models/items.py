"""Scan domain models: targets, discovered items and per-category groupings.

This module defines the core data structures produced by scanning:
what to look at (ScanTarget), what was found (DiscoveredItem) and how
findings are grouped for presentation and cleaning (CategoryResult).
"""

from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from pathlib import Path


class RiskLevel(str, Enum):
    """How risky it is to remove data of a given category.

    Attributes:
        LOW: Regenerable data (caches, logs, trash).
        MEDIUM: User-visible data that is usually safe to drop.
        HIGH: System-level data; removal may need care or admin rights.
    """

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        """Sort order, lowest risk first."""
        return ("low", "medium", "high").index(self.value)


class Category(str, Enum):
    """Semantic category of reclaimable data."""

    SYSTEM_CACHE = "system_cache"
    USER_CACHE = "user_cache"
    BROWSER_CACHE = "browser_cache"
    APPLICATION_CACHE = "application_cache"
    CODE_EDITOR_CACHE = "code_editor_cache"
    DEV_TOOL_CACHE = "dev_tool_cache"
    SHELL_CACHE = "shell_cache"
    LOGS = "logs"
    DOWNLOADS = "downloads"
    TRASH = "trash"
    MAIL_ATTACHMENTS = "mail_attachments"
    XCODE_DATA = "xcode_data"
    DOCKER_DATA = "docker_data"
    ANDROID_DATA = "android_data"
    HOMEBREW_CACHE = "homebrew_cache"
    SYSTEM_LEVEL = "system_level"
    ORPHANED = "orphaned"
    PROJECT_ARTIFACTS = "project_artifacts"
    INSTALLERS = "installers"
    APPLICATIONS = "applications"
    APP_REMNANTS = "app_remnants"

    @property
    def label(self) -> str:
        """Human-readable category name."""
        return _CATEGORY_LABELS[self]

    @property
    def risk_level(self) -> RiskLevel:
        """Default risk level for items of this category."""
        if self in (Category.SYSTEM_CACHE, Category.SYSTEM_LEVEL):
            return RiskLevel.HIGH
        if self in (
            Category.DOWNLOADS,
            Category.MAIL_ATTACHMENTS,
            Category.XCODE_DATA,
            Category.DOCKER_DATA,
            Category.ANDROID_DATA,
            Category.ORPHANED,
            Category.PROJECT_ARTIFACTS,
            Category.INSTALLERS,
            Category.APPLICATIONS,
            Category.APP_REMNANTS,
        ):
            return RiskLevel.MEDIUM
        return RiskLevel.LOW


_CATEGORY_LABELS: dict[Category, str] = {
    Category.SYSTEM_CACHE: "System Caches",
    Category.USER_CACHE: "User Caches",
    Category.BROWSER_CACHE: "Browser Data",
    Category.APPLICATION_CACHE: "App Caches",
    Category.CODE_EDITOR_CACHE: "Code Editor Caches",
    Category.DEV_TOOL_CACHE: "Developer Tools",
    Category.SHELL_CACHE: "Shell Data",
    Category.LOGS: "Logs",
    Category.DOWNLOADS: "Downloads",
    Category.TRASH: "Trash",
    Category.MAIL_ATTACHMENTS: "Mail Attachments",
    Category.XCODE_DATA: "Xcode Data",
    Category.DOCKER_DATA: "Docker Data",
    Category.ANDROID_DATA: "Android Data",
    Category.HOMEBREW_CACHE: "Homebrew",
    Category.SYSTEM_LEVEL: "System Maintenance",
    Category.ORPHANED: "Orphaned App Data",
    Category.PROJECT_ARTIFACTS: "Project Artifacts",
    Category.INSTALLERS: "Installers",
    Category.APPLICATIONS: "Applications",
    Category.APP_REMNANTS: "App Leftovers",
}


@dataclass(frozen=True, slots=True)
class ScanTarget:
    """A filesystem root to examine for reclaimable space.

    Attributes:
        path: Root path of the target.
        category: Semantic category assigned to everything found here.
        requires_admin: Whether removing data here needs elevated rights.
        expand: Report each direct child as its own item instead of the root.
        description: Optional human-readable description.
    """

    path: Path
    category: Category
    requires_admin: bool = False
    expand: bool = False
    description: str | None = None


@dataclass(frozen=True, slots=True)
class DiscoveredItem:
    """A single reclaimable filesystem entry found during a scan.

    The size is captured at discovery time and is never re-validated
    against later filesystem changes. Items are immutable; selection is
    changed by deriving a new item with :meth:`with_selected`.

    Attributes:
        path: Absolute path of the entry.
        name: Display name (usually the last path component).
        size: Size in bytes at discovery time.
        category: Category the item belongs to.
        last_modified: Modification time, if it could be read.
        selected: Whether the item takes part in the next clean.
        requires_admin: Whether removal needs elevated rights.
        display_name: Friendlier name (e.g. app name from a bundle id).
        subtitle: Extra context such as the containing library folder.
    """

    path: Path
    name: str
    size: int
    category: Category
    last_modified: datetime | None = None
    selected: bool = True
    requires_admin: bool = False
    display_name: str | None = None
    subtitle: str | None = None

    def __post_init__(self) -> None:
        """Validate item data after initialization."""
        if not str(self.path):
            msg = "Item path cannot be empty"
            raise ValueError(msg)
        if self.size < 0:
            msg = f"Item size cannot be negative, got {self.size}"
            raise ValueError(msg)

    @property
    def risk_level(self) -> RiskLevel:
        """Risk level inherited from the item's category."""
        return self.category.risk_level

    def with_selected(self, selected: bool) -> "DiscoveredItem":
        """Return a copy of this item with a different selection flag."""
        return replace(self, selected=selected)


@dataclass(slots=True)
class CategoryResult:
    """Items of one category with aggregate sizes.

    Attributes:
        category: The category shared by all items.
        items: Items in filesystem-enumeration order.
    """

    category: Category
    items: list[DiscoveredItem] = field(default_factory=list)

    @property
    def total_size(self) -> int:
        """Sum of all item sizes."""
        return sum(item.size for item in self.items)

    @property
    def selected_items(self) -> list[DiscoveredItem]:
        """Items currently selected for cleaning."""
        return [item for item in self.items if item.selected]

    @property
    def selected_size(self) -> int:
        """Sum of selected item sizes."""
        return sum(item.size for item in self.selected_items)

    def set_selected(self, path: Path, selected: bool) -> bool:
        """Change the selection flag of the item at ``path``.

        Returns:
            True if an item with that path was found.
        """
        for index, item in enumerate(self.items):
            if item.path == path:
                self.items[index] = item.with_selected(selected)
                return True
        return False

    def select_all(self, selected: bool = True) -> None:
        """Set the selection flag on every item."""
        self.items = [item.with_selected(selected) for item in self.items]


def group_by_category(items: Iterable[DiscoveredItem]) -> list[CategoryResult]:
    """Group items into CategoryResults, largest category first.

    Every input item lands in exactly one result, so the sum of
    ``total_size`` over the results equals the sum of item sizes.

    Args:
        items: Discovered items in any order.

    Returns:
        One CategoryResult per category present, sorted by total size
        descending (ties keep first-seen order).
    """
    grouped: dict[Category, CategoryResult] = {}
    for item in items:
        result = grouped.get(item.category)
        if result is None:
            result = grouped[item.category] = CategoryResult(category=item.category)
        result.items.append(item)
    return sorted(grouped.values(), key=lambda r: r.total_size, reverse=True)
