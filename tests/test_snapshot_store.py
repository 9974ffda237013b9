"""Tests for the SnapshotStore."""

from __future__ import annotations

import json
import os
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from savesnap.core.copy_engine import CopyEngine, CopyStrategy
from savesnap.core.fingerprint import fingerprint
from savesnap.core.snapshot_store import SnapshotStore, snapshot_name
from savesnap.errors import (
    IOFatalError,
    NotFoundError,
    SnapshotCollisionError,
    SnapshotError,
)
from savesnap.models.copy_report import CopyReport


@pytest.fixture
def backup_root(tmp_path: Path) -> Path:
    return tmp_path / "backups"


@pytest.fixture
def engine_spy(native_engine: CopyEngine) -> MagicMock:
    return MagicMock(wraps=native_engine)


@pytest.fixture
def store(backup_root: Path, engine_spy: MagicMock) -> SnapshotStore:
    return SnapshotStore(backup_root, engine_spy, workers=2, lock_timeout=5)


class HalfCopyStrategy(CopyStrategy):
    """Writes one file, then fails."""

    name = "half"

    def is_available(self) -> bool:
        return True

    def copy(self, src: Path, dst: Path) -> CopyReport:
        dst.mkdir(parents=True, exist_ok=True)
        (dst / "a.txt").write_text("partial")
        raise SnapshotError("disk full")


class TestSnapshotName:
    def test_prefix_and_truncation(self) -> None:
        digest = "0123456789abcdef" * 4
        assert snapshot_name(digest) == "backup_0123456789ab"


class TestSave:
    def test_creates_snapshot(self, store: SnapshotStore, save_dir: Path, backup_root: Path) -> None:
        draft = store.save(save_dir, name="before boss")

        digest = fingerprint(save_dir)
        snapshot = backup_root / f"backup_{digest[:12]}"
        assert draft.digest == digest
        assert draft.storage_path == str(snapshot)
        assert draft.size == 30
        assert draft.name == "before boss"
        assert not draft.reused
        assert snapshot.is_dir()
        assert fingerprint(snapshot) == digest

    def test_writes_sidecar_with_full_digest(
        self, store: SnapshotStore, save_dir: Path, backup_root: Path
    ) -> None:
        draft = store.save(save_dir)
        sidecar = backup_root / f"{snapshot_name(draft.digest)}.json"
        with open(sidecar, encoding="utf-8") as f:
            assert json.load(f)["digest"] == draft.digest

    def test_default_name(self, store: SnapshotStore, save_dir: Path) -> None:
        assert store.save(save_dir).name.startswith("save_")
        assert store.save(save_dir, name="   ").name.startswith("save_")

    def test_save_time_is_utc(self, store: SnapshotStore, save_dir: Path) -> None:
        draft = store.save(save_dir)
        assert draft.save_time.utcoffset().total_seconds() == 0

    def test_missing_source(self, store: SnapshotStore, tmp_path: Path) -> None:
        with pytest.raises(NotFoundError):
            store.save(tmp_path / "nope")

    def test_file_source_rejected(self, store: SnapshotStore, save_dir: Path) -> None:
        with pytest.raises(IOFatalError):
            store.save(save_dir / "a.txt")


class TestDedup:
    def test_second_save_copies_nothing(
        self, store: SnapshotStore, save_dir: Path, engine_spy: MagicMock
    ) -> None:
        first = store.save(save_dir)
        second = store.save(save_dir)

        assert engine_spy.copy_tree.call_count == 1
        assert second.reused
        assert second.digest == first.digest
        assert second.storage_path == first.storage_path
        assert store.list_snapshots() == [snapshot_name(first.digest)]

    def test_changed_source_gets_new_snapshot(
        self, store: SnapshotStore, save_dir: Path, make_file
    ) -> None:
        first = store.save(save_dir)
        make_file(save_dir / "c.txt", 5, 5000)
        second = store.save(save_dir)

        assert second.digest != first.digest
        assert not second.reused
        assert len(store.list_snapshots()) == 2

    def test_prefix_collision_detected(
        self, store: SnapshotStore, save_dir: Path, backup_root: Path
    ) -> None:
        draft = store.save(save_dir)
        sidecar = backup_root / f"{snapshot_name(draft.digest)}.json"
        other = draft.digest[:12] + "0" * 52
        sidecar.write_text(json.dumps({"digest": other}), encoding="utf-8")

        with pytest.raises(SnapshotCollisionError):
            store.save(save_dir)

    def test_snapshot_without_sidecar_is_reused(
        self, store: SnapshotStore, save_dir: Path, backup_root: Path
    ) -> None:
        draft = store.save(save_dir)
        (backup_root / f"{snapshot_name(draft.digest)}.json").unlink()
        assert store.save(save_dir).reused


class TestFailedCopy:
    def test_half_written_snapshot_is_removed(self, save_dir: Path, backup_root: Path) -> None:
        store = SnapshotStore(backup_root, CopyEngine([HalfCopyStrategy()]))
        with pytest.raises(SnapshotError, match="disk full"):
            store.save(save_dir)

        assert store.list_snapshots() == []
        assert not store.exists(fingerprint(save_dir))


class TestDelete:
    def test_delete_removes_snapshot_and_sidecar(
        self, store: SnapshotStore, save_dir: Path, backup_root: Path
    ) -> None:
        draft = store.save(save_dir)
        assert store.delete(draft.digest) is True
        assert not Path(draft.storage_path).exists()
        assert not (backup_root / f"{snapshot_name(draft.digest)}.json").exists()

    def test_delete_missing_is_noop(self, store: SnapshotStore) -> None:
        assert store.delete("f" * 64) is False

    def test_lock_file_is_not_a_snapshot(self, store: SnapshotStore, save_dir: Path) -> None:
        store.save(save_dir)
        assert all(name.startswith("backup_") for name in store.list_snapshots())
        assert len(store.list_snapshots()) == 1
        assert os.path.exists(store.backup_root)
