"""Tests for the BackupCatalog JSON index."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from savesnap.data.catalog import BackupCatalog
from savesnap.errors import DuplicateDigestError, IOFatalError, NotFoundError
from savesnap.models.backup_record import BackupRecord

T0 = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


def _record(digest_char: str, name: str | None = None, minutes: int = 0) -> BackupRecord:
    return BackupRecord(
        id=0,
        digest=digest_char * 64,
        size=100,
        storage_path=f"/backups/backup_{digest_char * 12}",
        save_time=T0 + timedelta(minutes=minutes),
        name=name,
    )


@pytest.fixture
def catalog(tmp_path: Path) -> BackupCatalog:
    c = BackupCatalog(tmp_path / "catalog.json")
    c.load()
    return c


class TestCatalog:
    def test_insert_assigns_ids(self, catalog: BackupCatalog) -> None:
        assert catalog.insert(_record("a")) == 1
        assert catalog.insert(_record("b")) == 2
        assert catalog.count == 2

    def test_duplicate_digest_rejected(self, catalog: BackupCatalog) -> None:
        catalog.insert(_record("a", name="first"))
        with pytest.raises(DuplicateDigestError) as exc_info:
            catalog.insert(_record("a", name="second"))
        assert exc_info.value.existing.name == "first"
        assert "first" in str(exc_info.value)

    def test_get_by_id_and_digest(self, catalog: BackupCatalog) -> None:
        record_id = catalog.insert(_record("c", name="slot"))
        assert catalog.get_by_id(record_id).name == "slot"
        assert catalog.get_by_digest("c" * 64).id == record_id
        assert catalog.get_by_id(99) is None
        assert catalog.get_by_digest("d" * 64) is None

    def test_list_newest_first(self, catalog: BackupCatalog) -> None:
        catalog.insert(_record("a", minutes=0))
        catalog.insert(_record("b", minutes=10))
        catalog.insert(_record("c", minutes=5))
        assert [r.digest[0] for r in catalog.list_all()] == ["b", "c", "a"]

    def test_delete(self, catalog: BackupCatalog) -> None:
        record_id = catalog.insert(_record("a"))
        catalog.delete(record_id)
        assert catalog.get_by_id(record_id) is None
        with pytest.raises(NotFoundError):
            catalog.delete(record_id)

    def test_persistence(self, tmp_path: Path) -> None:
        path = tmp_path / "catalog.json"
        first = BackupCatalog(path)
        first.insert(_record("a", name="kept"))
        first.insert(_record("b"))
        first.delete(2)

        reloaded = BackupCatalog(path)
        reloaded.load()
        record = reloaded.get_by_id(1)
        assert record is not None
        assert record.name == "kept"
        assert record.save_time == T0
        # Ids are never reused
        assert reloaded.insert(_record("c")) == 3

    def test_save_time_stored_as_rfc3339(self, catalog: BackupCatalog) -> None:
        catalog.insert(_record("a"))
        with open(catalog.path, encoding="utf-8") as f:
            raw = json.load(f)
        assert raw["backups"][0]["save_time"] == "2025-03-01T12:00:00+00:00"

    def test_malformed_entries_skipped(self, tmp_path: Path) -> None:
        path = tmp_path / "catalog.json"
        good = _record("a")
        good.id = 1
        path.write_text(
            json.dumps({"version": 1, "next_id": 2, "backups": [good.to_dict(), {"id": 5}]}),
            encoding="utf-8",
        )
        catalog = BackupCatalog(path)
        catalog.load()
        assert catalog.count == 1


class TestCatalogWriteFailure:
    def test_failed_insert_leaves_no_record(self, tmp_path: Path) -> None:
        path = tmp_path / "catalog.json"
        path.mkdir()
        catalog = BackupCatalog(path)

        with pytest.raises(IOFatalError):
            catalog.insert(_record("a", name="x"))

        assert catalog.count == 0
        assert catalog.get_by_digest("a" * 64) is None
        assert not path.with_suffix(".tmp").exists()

        path.rmdir()
        assert catalog.insert(_record("a", name="x")) == 1

    def test_failed_delete_keeps_record(self, tmp_path: Path) -> None:
        path = tmp_path / "catalog.json"
        catalog = BackupCatalog(path)
        record_id = catalog.insert(_record("a"))
        path.unlink()
        path.mkdir()

        with pytest.raises(IOFatalError):
            catalog.delete(record_id)

        assert catalog.get_by_id(record_id) is not None
