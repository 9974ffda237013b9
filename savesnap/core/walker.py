"""Metadata walker — parallel directory traversal without reading file contents."""

from __future__ import annotations

import os
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from pathlib import Path

from loguru import logger

from savesnap.errors import IOFatalError, NotFoundError
from savesnap.models.tree_entry import TreeEntry
from savesnap.utils import resolve_workers

# (entries found in one directory, sub-directories still to visit)
_Listing = tuple[list[TreeEntry], list[tuple[Path, str]]]


def _mtime_seconds(st: os.stat_result) -> int:
    """Whole seconds since epoch; pre-epoch timestamps count as unavailable."""
    return max(st.st_mtime_ns // 1_000_000_000, 0)


def _list_directory(directory: Path, prefix: str) -> _Listing:
    """
    List one directory.

    Raises OSError only if *directory* itself cannot be opened; a child that
    fails to stat is logged and skipped.
    """
    entries: list[TreeEntry] = []
    subdirs: list[tuple[Path, str]] = []

    with os.scandir(directory) as it:
        for child in it:
            relative = f"{prefix}{child.name}"
            try:
                is_dir = child.is_dir(follow_symlinks=False)
                st = child.stat(follow_symlinks=False)
            except OSError as e:
                logger.warning(f"Skipping unreadable entry {child.path}: {e}")
                continue

            entries.append(
                TreeEntry(
                    relative_path=relative,
                    size=0 if is_dir else st.st_size,
                    modified=_mtime_seconds(st),
                    is_directory=is_dir,
                )
            )
            if is_dir:
                subdirs.append((Path(child.path), f"{relative}/"))

    return entries, subdirs


def _list_child(directory: Path, prefix: str) -> _Listing:
    """List a descendant directory, skipping it entirely if unreadable."""
    try:
        return _list_directory(directory, prefix)
    except OSError as e:
        logger.warning(f"Skipping unreadable directory {directory}: {e}")
        return [], []


def walk_tree(root: str | Path, workers: int | None = None) -> list[TreeEntry]:
    """
    Collect a TreeEntry for every descendant of *root* (root excluded).

    Each directory listing runs as its own task on a thread pool and
    sub-directories are submitted as they are discovered. Results are merged
    only here, in the calling thread, so the returned order depends on
    scheduling: callers that need a stable order must sort.
    """
    root = Path(root)
    if not root.exists():
        raise NotFoundError(f"Path does not exist: {root}")

    try:
        entries, subdirs = _list_directory(root, "")
    except OSError as e:
        raise IOFatalError(f"Cannot read directory {root}: {e}") from e

    if not subdirs:
        return entries

    with ThreadPoolExecutor(max_workers=resolve_workers(workers)) as pool:
        pending: set[Future[_Listing]] = {
            pool.submit(_list_child, path, prefix) for path, prefix in subdirs
        }
        while pending:
            done, pending = wait(pending, return_when=FIRST_COMPLETED)
            for future in done:
                found, children = future.result()
                entries.extend(found)
                pending.update(
                    pool.submit(_list_child, path, prefix) for path, prefix in children
                )

    logger.debug(f"Walked {root}: {len(entries)} entries")
    return entries
