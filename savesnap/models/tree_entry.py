"""Tree metadata model."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class TreeEntry:
    """Metadata of one descendant of a walked directory."""

    relative_path: str  # Forward-slash separated, relative to the walk root
    size: int  # 0 for directories
    modified: int  # Whole seconds since epoch, 0 if unavailable
    is_directory: bool = False
