"""Size calculator — total bytes under a path."""

from __future__ import annotations

from pathlib import Path

from savesnap.core.walker import walk_tree
from savesnap.errors import NotFoundError


def total_size(path: str | Path, workers: int | None = None) -> int:
    """Sum the sizes of every file under *path*; a file returns its own size."""
    path = Path(path)
    if path.is_file():
        return path.stat().st_size
    if not path.exists():
        raise NotFoundError(f"Path does not exist: {path}")
    return sum(e.size for e in walk_tree(path, workers=workers) if not e.is_directory)
