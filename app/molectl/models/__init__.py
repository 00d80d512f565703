"""Data models for molectl.

This module exports the scan and clean result types shared by all
components.
"""

from molectl.models.items import (
    Category,
    CategoryResult,
    DiscoveredItem,
    RiskLevel,
    ScanTarget,
    group_by_category,
)
from molectl.models.outcome import (
    CleanError,
    CleanErrorKind,
    DeletionOutcome,
    access_denied_error,
    deletion_failed_error,
    protected_path_error,
)

__all__ = [
    "Category",
    "CategoryResult",
    "CleanError",
    "CleanErrorKind",
    "DeletionOutcome",
    "DiscoveredItem",
    "RiskLevel",
    "ScanTarget",
    "access_denied_error",
    "deletion_failed_error",
    "group_by_category",
    "protected_path_error",
]
