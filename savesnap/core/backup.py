"""Backup manager — save, list, restore and delete backups through the catalog."""

from __future__ import annotations

from pathlib import Path

from loguru import logger

from savesnap.core.path_provider import SavePathProvider
from savesnap.core.restore import RestoreManager, RestoreResult
from savesnap.core.snapshot_store import SnapshotStore
from savesnap.data.catalog import CatalogProtocol
from savesnap.errors import DuplicateDigestError, NotFoundError
from savesnap.models.backup_record import BackupRecord
from savesnap.utils import open_folder


class BackupManager:
    """
    User-facing backup operations.

    Keeps the catalog and the on-disk snapshots in step: a record is only
    inserted after its snapshot exists, and deleting a backup removes both.
    """

    def __init__(
        self,
        store: SnapshotStore,
        restore_manager: RestoreManager,
        catalog: CatalogProtocol,
        paths: SavePathProvider,
    ) -> None:
        self._store = store
        self._restore = restore_manager
        self._catalog = catalog
        self._paths = paths

    def create_backup(
        self,
        name: str | None = None,
        more_info: str | None = None,
        source: str | Path | None = None,
    ) -> BackupRecord:
        """Snapshot the save folder and record it in the catalog."""
        source_path = Path(source) if source else self._paths.get_source_path()
        draft = self._store.save(source_path, name=name, more_info=more_info)

        existing = self._catalog.get_by_digest(draft.digest)
        if existing is not None:
            logger.info(f"Content unchanged since backup '{existing.display_name}'")
            raise DuplicateDigestError(draft.digest, existing)

        record = BackupRecord.from_draft(draft)
        self._catalog.insert(record)
        logger.info(f"Backup saved: {record.display_name} (#{record.id})")
        return record

    def list_backups(self) -> list[BackupRecord]:
        """All backups, newest first."""
        return self._catalog.list_all()

    def get_backup(self, backup_id: int) -> BackupRecord:
        record = self._catalog.get_by_id(backup_id)
        if record is None:
            raise NotFoundError(f"No backup with id {backup_id}")
        return record

    def restore_backup(
        self, backup_id: int, target: str | Path | None = None
    ) -> RestoreResult:
        """Replace the save folder (or *target*) with backup *backup_id*."""
        record = self.get_backup(backup_id)
        target_path = Path(target) if target else self._paths.get_source_path()
        return self._restore.restore(record, target_path)

    def delete_backup(self, backup_id: int) -> None:
        """Delete the snapshot and its catalog entry together."""
        record = self.get_backup(backup_id)
        shared = [
            r for r in self._catalog.list_all()
            if r.digest == record.digest and r.id != record.id
        ]
        if shared:
            logger.debug(f"Snapshot of #{record.id} still referenced, keeping files")
        else:
            self._store.delete(record.digest)
        self._catalog.delete(record.id)
        logger.info(f"Deleted backup {record.display_name} (#{record.id})")

    def open_backup(self, backup_id: int) -> Path:
        """Open the snapshot folder in the system file manager."""
        record = self.get_backup(backup_id)
        path = self._store.snapshot_path(record.digest)
        if not path.is_dir():
            raise NotFoundError(f"Snapshot not found: {path}")
        open_folder(path)
        return path
