"""Shared fixtures: small save-folder trees with pinned timestamps."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Callable

import pytest

from savesnap.core.copy_engine import CopyEngine, NativeCopyStrategy


def write_file(path: Path, size: int, mtime: int) -> Path:
    """Create *path* with *size* bytes and a fixed modification time."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"x" * size)
    os.utime(path, (mtime, mtime))
    return path


@pytest.fixture
def make_file() -> Callable[[Path, int, int], Path]:
    return write_file


@pytest.fixture
def save_dir(tmp_path: Path) -> Path:
    """
    A save folder::

        a.txt        10 bytes, mtime 1000
        sub/         mtime 3000
        sub/b.txt    20 bytes, mtime 2000
        empty/       mtime 4000
    """
    root = tmp_path / "save00"
    write_file(root / "a.txt", 10, 1000)
    write_file(root / "sub" / "b.txt", 20, 2000)
    os.utime(root / "sub", (3000, 3000))
    (root / "empty").mkdir()
    os.utime(root / "empty", (4000, 4000))
    return root


@pytest.fixture
def native_engine() -> CopyEngine:
    """Copy engine without OS fast paths, so results don't depend on the host."""
    return CopyEngine([NativeCopyStrategy(workers=4)])
