"""Fingerprint engine — metadata-only SHA-256 digest of a file or directory tree.

Only names, sizes, modification times and the directory flag are hashed, so
fingerprinting costs O(entries) rather than O(bytes). Edits that keep both
size and mtime intact are invisible to the digest.

Directory input order (stable, byte-wise on the UTF-8 path)::

    a.txt        size=10  mtime=1000  dir=0
    sub          size=0   mtime=...   dir=1
    sub/b.txt    size=20  mtime=2000  dir=0

A directory always precedes its own children because a path sorts before
any of its extensions.
"""

from __future__ import annotations

import hashlib
import struct
from pathlib import Path
from typing import Iterable

from savesnap.core.walker import walk_tree
from savesnap.errors import NotFoundError
from savesnap.models.backup_record import Digest
from savesnap.models.tree_entry import TreeEntry

_U64 = struct.Struct("<Q")


def _path_bytes(relative_path: str) -> bytes:
    return relative_path.encode("utf-8", "surrogateescape")


def sort_entries(entries: Iterable[TreeEntry]) -> list[TreeEntry]:
    """Sort entries byte-wise by relative path."""
    return sorted(entries, key=lambda e: _path_bytes(e.relative_path))


def hash_entries(entries: Iterable[TreeEntry]) -> Digest:
    """Digest of a walker result; independent of the order given."""
    h = hashlib.sha256()
    for entry in sort_entries(entries):
        h.update(_path_bytes(entry.relative_path))
        h.update(_U64.pack(entry.size))
        h.update(_U64.pack(entry.modified))
        h.update(b"\x01" if entry.is_directory else b"\x00")
    return h.hexdigest()


def _hash_file(path: Path) -> Digest:
    st = path.stat()
    h = hashlib.sha256()
    h.update(path.name.encode("utf-8", "surrogateescape"))
    h.update(_U64.pack(st.st_size))
    if st.st_mtime_ns >= 0:
        h.update(_U64.pack(st.st_mtime_ns // 1_000_000_000))
    return h.hexdigest()


def fingerprint(path: str | Path, workers: int | None = None) -> Digest:
    """Compute the Digest identifying the current state of *path*."""
    path = Path(path)
    if path.is_file():
        return _hash_file(path)
    if path.is_dir():
        return hash_entries(walk_tree(path, workers=workers))
    raise NotFoundError(f"Not a file or directory: {path}")
