"""Cleaning: trash access, elevated batch removal and orchestration."""

from molectl.cleaning.orchestrator import DeletionOrchestrator, ProtectedPathError
from molectl.cleaning.privileged import BatchResult, PrivilegedRemover, batched, build_command
from molectl.cleaning.trash import TrashBin, default_trash_dirs

__all__ = [
    "BatchResult",
    "DeletionOrchestrator",
    "PrivilegedRemover",
    "ProtectedPathError",
    "TrashBin",
    "batched",
    "build_command",
    "default_trash_dirs",
]
