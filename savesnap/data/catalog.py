"""Backup catalog — JSON-based index of BackupRecords."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Protocol

from loguru import logger

from savesnap.errors import DuplicateDigestError, IOFatalError, NotFoundError
from savesnap.models.backup_record import BackupRecord, Digest


class CatalogProtocol(Protocol):
    """Record store consumed by BackupManager."""

    def insert(self, record: BackupRecord) -> int: ...

    def list_all(self) -> list[BackupRecord]: ...

    def get_by_id(self, record_id: int) -> BackupRecord | None: ...

    def get_by_digest(self, digest: Digest) -> BackupRecord | None: ...

    def delete(self, record_id: int) -> None: ...


class BackupCatalog:
    """
    Backup index — reads/writes catalog.json.

    File format::

        {"version": 1, "next_id": 3, "backups": [{...}, {...}]}

    Every mutation is persisted immediately with an atomic replace.
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        self._records: dict[int, BackupRecord] = {}
        self._next_id = 1
        self._version = 1

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> None:
        """Load the catalog from disk."""
        self._records.clear()
        self._next_id = 1
        if not self._path.exists():
            return
        try:
            with open(self._path, encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.error(f"Failed to load backup catalog: {e}")
            return

        self._version = data.get("version", 1)
        for raw in data.get("backups", []):
            try:
                record = BackupRecord.from_dict(raw)
            except (TypeError, KeyError, ValueError) as e:
                logger.warning(f"Skipping malformed catalog entry {raw!r}: {e}")
                continue
            self._records[record.id] = record
        highest = max(self._records, default=0)
        self._next_id = max(int(data.get("next_id", 1)), highest + 1)

    def save(self) -> None:
        """Persist the catalog to disk. Raises IOFatalError if the write fails."""
        data = {
            "version": self._version,
            "next_id": self._next_id,
            "backups": [r.to_dict() for r in self._records.values()],
        }
        tmp = self._path.with_suffix(".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            tmp.replace(self._path)
        except OSError as e:
            logger.error(f"Failed to save backup catalog: {e}")
            tmp.unlink(missing_ok=True)
            raise IOFatalError(f"Cannot write backup catalog {self._path}: {e}") from e

    def insert(self, record: BackupRecord) -> int:
        """Add a record, assigning its id. One record per digest.

        The in-memory state only changes once the catalog is on disk.
        """
        existing = self.get_by_digest(record.digest)
        if existing is not None:
            raise DuplicateDigestError(record.digest, existing)
        record_id = self._next_id
        record.id = record_id
        self._records[record_id] = record
        self._next_id += 1
        try:
            self.save()
        except IOFatalError:
            del self._records[record_id]
            self._next_id = record_id
            record.id = 0
            raise
        logger.debug(f"Catalog: inserted backup #{record_id} ({record.digest[:12]})")
        return record_id

    def list_all(self) -> list[BackupRecord]:
        """All records, newest first."""
        return sorted(self._records.values(), key=lambda r: (r.save_time, r.id), reverse=True)

    def get_by_id(self, record_id: int) -> BackupRecord | None:
        return self._records.get(record_id)

    def get_by_digest(self, digest: Digest) -> BackupRecord | None:
        for record in self._records.values():
            if record.digest == digest:
                return record
        return None

    def delete(self, record_id: int) -> None:
        record = self._records.pop(record_id, None)
        if record is None:
            raise NotFoundError(f"No backup with id {record_id}")
        try:
            self.save()
        except IOFatalError:
            self._records[record_id] = record
            raise

    @property
    def count(self) -> int:
        return len(self._records)
