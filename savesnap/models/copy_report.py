"""Copy engine result models."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class CopyFailure:
    """A single file that could not be copied."""

    path: Path
    error: str


@dataclass
class CopyJob:
    """One scanned source entry and where it goes."""

    source: Path
    destination: Path
    is_directory: bool = False


@dataclass
class CopyReport:
    """Outcome of a copy_tree run."""

    strategy: str
    files_copied: int = 0
    failures: list[CopyFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures
