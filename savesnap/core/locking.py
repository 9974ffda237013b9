"""Advisory lock serializing save/restore/delete against one backup root."""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from filelock import FileLock, Timeout
from loguru import logger

from savesnap.errors import IOFatalError, LockTimeoutError

LOCK_FILENAME = ".savesnap.lock"


@contextmanager
def backup_root_lock(root: Path, timeout: float = 30.0) -> Iterator[FileLock]:
    """Hold ``<root>/.savesnap.lock`` for the duration of the block."""
    try:
        root.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise IOFatalError(f"Cannot create backup root {root}: {e}") from e

    lock = FileLock(str(root / LOCK_FILENAME))
    try:
        lock.acquire(timeout=timeout)
    except Timeout as e:
        raise LockTimeoutError(
            f"Backup root {root} is busy (another save/restore is running)"
        ) from e

    logger.debug(f"Acquired lock on {root}")
    try:
        yield lock
    finally:
        lock.release()
        logger.debug(f"Released lock on {root}")
