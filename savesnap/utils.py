"""Shared utility functions."""

from __future__ import annotations

import os
import platform
import subprocess
from pathlib import Path


def format_size(size_bytes: int) -> str:
    """Format byte count to human-readable string."""
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / (1024 * 1024):.1f} MB"
    else:
        return f"{size_bytes / (1024 * 1024 * 1024):.2f} GB"


def resolve_workers(workers: int | None = None) -> int:
    """Worker-pool size: explicit value, else the machine's CPU count."""
    if workers and workers > 0:
        return workers
    return os.cpu_count() or 4


def open_folder(path: str | Path) -> None:
    """Open a folder in the system file manager."""
    path = Path(path)
    target = path if path.is_dir() else path.parent

    system = platform.system()
    if system == "Windows":
        os.startfile(str(target))  # noqa: S606
    elif system == "Darwin":
        subprocess.Popen(["open", str(target)])  # noqa: S603, S607
    else:
        subprocess.Popen(["xdg-open", str(target)])  # noqa: S603, S607
