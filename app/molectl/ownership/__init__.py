"""Application ownership: running owners, installed apps and orphan detection."""

from molectl.ownership.installed import SYSTEM_COMPONENT_IDS, InstalledAppIndex
from molectl.ownership.orphans import OrphanCorrelator, display_name_for, looks_like_identifier
from molectl.ownership.presence import PresenceLookup, is_safe_identifier
from molectl.ownership.remnants import AppUninstaller, InstalledApp, RemnantLocation, RemnantType
from molectl.ownership.running import (
    FOLDER_ALIASES,
    RunningOwnerDetector,
    collect_running_ids,
    extract_identifier,
    owner_identifiers,
)

__all__ = [
    "FOLDER_ALIASES",
    "SYSTEM_COMPONENT_IDS",
    "AppUninstaller",
    "InstalledApp",
    "InstalledAppIndex",
    "OrphanCorrelator",
    "PresenceLookup",
    "RemnantLocation",
    "RemnantType",
    "RunningOwnerDetector",
    "collect_running_ids",
    "display_name_for",
    "extract_identifier",
    "is_safe_identifier",
    "looks_like_identifier",
    "owner_identifiers",
]
