"""Tests for the backup root lock."""

from __future__ import annotations

from pathlib import Path

import pytest

from savesnap.core.locking import LOCK_FILENAME, backup_root_lock
from savesnap.core.snapshot_store import SnapshotStore
from savesnap.errors import LockTimeoutError


class TestBackupRootLock:
    def test_creates_root_and_lock_file(self, tmp_path: Path) -> None:
        root = tmp_path / "backups"
        with backup_root_lock(root, timeout=1):
            assert (root / LOCK_FILENAME).exists()

    def test_second_holder_times_out(self, tmp_path: Path) -> None:
        with backup_root_lock(tmp_path, timeout=1):
            with pytest.raises(LockTimeoutError):
                with backup_root_lock(tmp_path, timeout=0.1):
                    pass

    def test_released_after_error(self, tmp_path: Path) -> None:
        with pytest.raises(RuntimeError):
            with backup_root_lock(tmp_path, timeout=1):
                raise RuntimeError("boom")
        with backup_root_lock(tmp_path, timeout=0.1):
            pass

    def test_save_blocked_while_locked(self, tmp_path: Path, save_dir: Path, native_engine) -> None:
        store = SnapshotStore(tmp_path / "backups", native_engine, lock_timeout=0.1)
        with backup_root_lock(store.backup_root, timeout=1):
            with pytest.raises(LockTimeoutError):
                store.save(save_dir)
        assert store.save(save_dir).digest
