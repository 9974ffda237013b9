"""Restore manager — verify a snapshot, then replace the live directory with it."""

from __future__ import annotations

import shutil
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from uuid import uuid4

from loguru import logger

from savesnap.core.copy_engine import CopyEngine
from savesnap.core.fingerprint import fingerprint
from savesnap.core.locking import backup_root_lock
from savesnap.core.snapshot_store import SnapshotStore
from savesnap.errors import CorruptionError, IOFatalError, NotFoundError
from savesnap.models.backup_record import BackupRecord


class RestoreStage(StrEnum):
    """Restore progress; a failure is terminal at whichever stage it occurs."""

    IDLE = "idle"
    VALIDATING = "validating"
    VERIFYING = "verifying"
    REPLACING = "replacing"
    COPYING = "copying"
    DONE = "done"


@dataclass
class RestoreResult:
    """Result of a restore operation."""

    success: bool
    message: str
    target: Path
    stage: RestoreStage = RestoreStage.DONE
    files_copied: int = 0


class RestoreManager:
    """
    Restore snapshots produced by SnapshotStore.

    The snapshot is copied into a staging directory next to the target and
    only swapped in once the copy fully succeeded, so a failed restore never
    leaves the live directory half-populated.
    """

    def __init__(self, store: SnapshotStore, copy_engine: CopyEngine | None = None) -> None:
        self._store = store
        self._copy_engine = copy_engine or CopyEngine()
        self.stage = RestoreStage.IDLE

    def restore(self, record: BackupRecord, target_path: str | Path) -> RestoreResult:
        target = Path(target_path)
        self.stage = RestoreStage.IDLE
        try:
            with backup_root_lock(self._store.backup_root, self._store.lock_timeout):
                return self._restore(record, target)
        except Exception as e:
            logger.error(f"Restore of {record.display_name} failed while {self.stage}: {e}")
            raise

    def _restore(self, record: BackupRecord, target: Path) -> RestoreResult:
        self.stage = RestoreStage.VALIDATING
        snapshot = self._store.snapshot_path(record.digest)
        if not snapshot.is_dir():
            raise NotFoundError(f"Snapshot not found: {snapshot}")

        self.stage = RestoreStage.VERIFYING
        current = fingerprint(snapshot)
        if current != record.digest:
            raise CorruptionError(snapshot, record.digest, current)
        logger.debug(f"Verified snapshot {snapshot.name}")

        self.stage = RestoreStage.REPLACING
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise IOFatalError(f"Cannot create parent directory {target.parent}: {e}") from e
        staging = target.parent / f".{target.name}.restore-{uuid4().hex[:8]}"

        self.stage = RestoreStage.COPYING
        try:
            report = self._copy_engine.copy_tree(snapshot, staging)
            self._swap_in(staging, target)
        finally:
            if staging.exists():
                shutil.rmtree(staging, ignore_errors=True)

        self.stage = RestoreStage.DONE
        message = f"Restored backup {record.display_name} -> {target}"
        logger.info(message)
        return RestoreResult(
            success=True,
            message=message,
            target=target,
            stage=self.stage,
            files_copied=report.files_copied,
        )

    @staticmethod
    def _swap_in(staging: Path, target: Path) -> None:
        """Replace *target* entirely with *staging*; restore is never a merge."""
        if target.exists() or target.is_symlink():
            try:
                if target.is_dir() and not target.is_symlink():
                    shutil.rmtree(target)
                else:
                    target.unlink()
            except OSError as e:
                raise IOFatalError(f"Cannot remove target directory {target}: {e}") from e
        try:
            staging.replace(target)
        except OSError as e:
            raise IOFatalError(f"Cannot move restored files into {target}: {e}") from e
