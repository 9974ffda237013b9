"""Application context — service container for dependency injection."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from savesnap.config import Config
    from savesnap.core.backup import BackupManager
    from savesnap.core.copy_engine import CopyEngine
    from savesnap.core.path_provider import SavePathProvider
    from savesnap.core.restore import RestoreManager
    from savesnap.core.snapshot_store import SnapshotStore
    from savesnap.data.catalog import BackupCatalog


@dataclass
class AppContext:
    """Central service container, built once by ``main.create_context``."""

    config: Config
    paths: SavePathProvider
    catalog: BackupCatalog

    # Snapshot engine
    copy_engine: CopyEngine
    snapshot_store: SnapshotStore
    restore_manager: RestoreManager
    backup_manager: BackupManager
