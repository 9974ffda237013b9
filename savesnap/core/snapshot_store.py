"""Snapshot store — content-addressed, deduplicated directory snapshots.

Layout under the backup root::

    {backup_root}/
      ├── backup_<first 12 digest hex chars>/    full copy of the saved tree
      ├── backup_<first 12 digest hex chars>.json sidecar with the full digest
      └── .savesnap.lock

The ``backup_`` prefix and 12-character truncation are shared with the
restore side and with snapshots written by earlier versions; keep both.
"""

from __future__ import annotations

import json
import shutil
from datetime import datetime, timezone
from pathlib import Path

from loguru import logger

from savesnap.core.copy_engine import CopyEngine
from savesnap.core.fingerprint import fingerprint
from savesnap.core.locking import backup_root_lock
from savesnap.core.size import total_size
from savesnap.errors import IOFatalError, NotFoundError, SnapshotCollisionError
from savesnap.models.backup_record import BackupDraft, Digest

SNAPSHOT_PREFIX = "backup_"
DIGEST_PREFIX_LEN = 12


def snapshot_name(digest: Digest) -> str:
    """On-disk directory name for a digest."""
    return f"{SNAPSHOT_PREFIX}{digest[:DIGEST_PREFIX_LEN]}"


def default_backup_name(save_time: datetime) -> str:
    return f"save_{save_time.isoformat(timespec='seconds')}"


class SnapshotStore:
    """Saves directory trees into the backup root, one directory per digest."""

    def __init__(
        self,
        backup_root: Path,
        copy_engine: CopyEngine | None = None,
        workers: int | None = None,
        lock_timeout: float = 30.0,
    ) -> None:
        self._root = Path(backup_root)
        self._copy_engine = copy_engine or CopyEngine()
        self._workers = workers
        self._lock_timeout = lock_timeout

    @property
    def backup_root(self) -> Path:
        return self._root

    @property
    def lock_timeout(self) -> float:
        return self._lock_timeout

    def snapshot_path(self, digest: Digest) -> Path:
        return self._root / snapshot_name(digest)

    def _sidecar_path(self, digest: Digest) -> Path:
        return self._root / f"{snapshot_name(digest)}.json"

    def exists(self, digest: Digest) -> bool:
        return self.snapshot_path(digest).is_dir()

    def list_snapshots(self) -> list[str]:
        """Names of the snapshot directories currently on disk."""
        if not self._root.is_dir():
            return []
        return sorted(
            p.name
            for p in self._root.iterdir()
            if p.is_dir() and p.name.startswith(SNAPSHOT_PREFIX)
        )

    # ── Save ──

    def save(
        self,
        source_path: str | Path,
        name: str | None = None,
        more_info: str | None = None,
    ) -> BackupDraft:
        """
        Snapshot *source_path* and return a draft record.

        An existing snapshot with the same digest is reused as-is: no copy and
        no re-verification here (restore verifies).
        """
        source = Path(source_path)
        if not source.exists():
            raise NotFoundError(f"Save path does not exist: {source}")
        if not source.is_dir():
            raise IOFatalError(f"Save path is not a directory: {source}")

        with backup_root_lock(self._root, self._lock_timeout):
            digest = fingerprint(source, workers=self._workers)
            dest = self.snapshot_path(digest)
            save_time = datetime.now(tz=timezone.utc)
            label = name.strip() if name and name.strip() else default_backup_name(save_time)

            if dest.exists():
                self._check_collision(digest)
                logger.info(f"Snapshot already exists, reusing: {dest.name}")
                return BackupDraft(
                    digest=digest,
                    size=total_size(dest, workers=self._workers),
                    storage_path=str(dest),
                    name=label,
                    save_time=save_time,
                    more_info=more_info,
                    reused=True,
                )

            try:
                self._copy_engine.copy_tree(source, dest)
            except Exception:
                # A half-written snapshot must not pass for a dedup hit later
                shutil.rmtree(dest, ignore_errors=True)
                raise
            self._write_sidecar(digest, source, save_time)

            size = total_size(dest, workers=self._workers)
            logger.info(f"Saved snapshot {dest.name} ({size} bytes) from {source}")
            return BackupDraft(
                digest=digest,
                size=size,
                storage_path=str(dest),
                name=label,
                save_time=save_time,
                more_info=more_info,
            )

    def _write_sidecar(self, digest: Digest, source: Path, save_time: datetime) -> None:
        """Record the full digest beside the snapshot (outside the hashed tree)."""
        meta = {
            "digest": digest,
            "source": str(source),
            "created_at": save_time.isoformat(),
        }
        try:
            with open(self._sidecar_path(digest), "w", encoding="utf-8") as f:
                json.dump(meta, f, ensure_ascii=False, indent=2)
        except OSError as e:
            logger.warning(f"Failed to write snapshot sidecar for {snapshot_name(digest)}: {e}")

    def _check_collision(self, digest: Digest) -> None:
        """Refuse to reuse a snapshot whose recorded full digest differs."""
        sidecar = self._sidecar_path(digest)
        if not sidecar.exists():
            return
        try:
            with open(sidecar, encoding="utf-8") as f:
                recorded = json.load(f).get("digest", "")
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Skipping malformed snapshot sidecar {sidecar}: {e}")
            return
        if recorded and recorded != digest:
            raise SnapshotCollisionError(
                f"{snapshot_name(digest)} already holds a different tree "
                f"({recorded[:16]}... != {digest[:16]}...)"
            )

    # ── Delete ──

    def delete(self, digest: Digest) -> bool:
        """Remove the snapshot for *digest*. Returns False if it was not on disk."""
        with backup_root_lock(self._root, self._lock_timeout):
            dest = self.snapshot_path(digest)
            self._sidecar_path(digest).unlink(missing_ok=True)
            if not dest.exists():
                logger.debug(f"Snapshot {dest.name} already gone")
                return False
            try:
                shutil.rmtree(dest)
            except OSError as e:
                raise IOFatalError(f"Cannot delete snapshot {dest}: {e}") from e
            logger.info(f"Deleted snapshot {dest.name}")
            return True
