"""Deletion outcome models.

A clean run never raises for a single item: every per-item failure is
captured as a CleanError value and aggregated into a DeletionOutcome.
Items skipped because their owning application is running are tracked
separately from errors.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum


class CleanErrorKind(str, Enum):
    """Classification of a per-item clean failure.

    Attributes:
        PROTECTED_PATH: Matched the whitelist or failed path-injection checks.
            The item was never attempted.
        ACCESS_DENIED: OS permission failure, including a refused or
            cancelled privilege elevation.
        DELETION_FAILED: Removal failed for any other reason.
    """

    PROTECTED_PATH = "protected_path"
    ACCESS_DENIED = "access_denied"
    DELETION_FAILED = "deletion_failed"


@dataclass(frozen=True, slots=True)
class CleanError:
    """A single item that could not be cleaned.

    Attributes:
        kind: Failure classification.
        path: Path of the affected item.
        message: Human-readable detail.
    """

    kind: CleanErrorKind
    path: str
    message: str

    def __str__(self) -> str:
        return self.message


def protected_path_error(path: str) -> CleanError:
    """Build the error reported for a protected or malformed path."""
    return CleanError(
        kind=CleanErrorKind.PROTECTED_PATH,
        path=path,
        message=f"Cannot delete protected path: {path}",
    )


def access_denied_error(path: str, detail: str | None = None) -> CleanError:
    """Build the error reported for a permission failure."""
    suffix = f" ({detail})" if detail else ""
    return CleanError(
        kind=CleanErrorKind.ACCESS_DENIED,
        path=path,
        message=f"Access denied to {path}{suffix}",
    )


def deletion_failed_error(path: str, detail: str) -> CleanError:
    """Build the error reported for any other removal failure."""
    return CleanError(
        kind=CleanErrorKind.DELETION_FAILED,
        path=path,
        message=f"Failed to delete {path}: {detail}",
    )


@dataclass(slots=True)
class DeletionOutcome:
    """Aggregated result of one clean operation.

    Attributes:
        deleted_count: Items removed (or that would be removed in a dry run).
        deleted_bytes: Bytes freed, using sizes captured at discovery time.
        errors: Items that were refused or failed.
        skipped_running: Paths skipped because their owning app is running.
    """

    deleted_count: int = 0
    deleted_bytes: int = 0
    errors: list[CleanError] = field(default_factory=list)
    skipped_running: list[str] = field(default_factory=list)

    @property
    def skipped_running_count(self) -> int:
        """Number of items skipped because their owner is running."""
        return len(self.skipped_running)

    @property
    def had_errors(self) -> bool:
        """Whether any item failed or was refused."""
        return bool(self.errors)

    def errors_of(self, kind: CleanErrorKind) -> list[CleanError]:
        """Errors of a single kind, in occurrence order."""
        return [error for error in self.errors if error.kind == kind]

    def record_deleted(self, size: int) -> None:
        """Count one removed item of ``size`` bytes."""
        self.deleted_count += 1
        self.deleted_bytes += size

    @classmethod
    def merge(cls, outcomes: Iterable["DeletionOutcome"]) -> "DeletionOutcome":
        """Deterministically combine several outcomes.

        Counts and bytes are summed; errors and skips are concatenated
        in input order.
        """
        merged = cls()
        for outcome in outcomes:
            merged.deleted_count += outcome.deleted_count
            merged.deleted_bytes += outcome.deleted_bytes
            merged.errors.extend(outcome.errors)
            merged.skipped_running.extend(outcome.skipped_running)
        return merged
