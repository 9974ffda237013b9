"""Snapshot engine errors — one exception type per failure class."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from savesnap.models.backup_record import BackupRecord
    from savesnap.models.copy_report import CopyFailure

# Number of failed paths quoted in a partial-copy message
SAMPLE_LIMIT = 10


class SnapshotError(Exception):
    """Base class for every error raised by the snapshot engine."""


class NotFoundError(SnapshotError):
    """Source path, snapshot directory or catalog record is missing."""


class IOFatalError(SnapshotError):
    """A root or parent directory could not be created, opened or read."""


class CorruptionError(SnapshotError):
    """Recomputed snapshot digest disagrees with the recorded one."""

    def __init__(self, path: Path, expected: str, actual: str) -> None:
        self.path = path
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Snapshot corrupted, aborting: {path} "
            f"(expected {expected[:12]}, found {actual[:12]})"
        )


class PartialCopyError(SnapshotError):
    """One or more files failed to copy; the rest are on disk."""

    def __init__(self, failures: list[CopyFailure]) -> None:
        self.failures = failures
        samples = ", ".join(str(f.path) for f in self.samples)
        super().__init__(f"{self.count} file(s) failed to copy: {samples}")

    @property
    def count(self) -> int:
        return len(self.failures)

    @property
    def samples(self) -> list[CopyFailure]:
        return self.failures[:SAMPLE_LIMIT]


class DuplicateDigestError(SnapshotError):
    """The catalog already holds a record with this digest."""

    def __init__(self, digest: str, existing: BackupRecord | None = None) -> None:
        self.digest = digest
        self.existing = existing
        label = existing.display_name if existing else digest[:12]
        super().__init__(f"Content unchanged since snapshot {label}")


class SnapshotCollisionError(SnapshotError):
    """Two different digests map to the same truncated snapshot name."""


class LockTimeoutError(SnapshotError):
    """The backup root lock could not be acquired in time."""


class StrategyUnavailableError(SnapshotError):
    """A copy strategy cannot run on this machine."""
