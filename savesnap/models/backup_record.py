"""Backup record models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

# 64-char lowercase hex SHA-256 of a tree's metadata
Digest = str


def _utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


@dataclass
class BackupDraft:
    """Result of a snapshot save, before the catalog assigns an id."""

    digest: Digest
    size: int
    storage_path: str
    name: str
    save_time: datetime = field(default_factory=_utc_now)
    more_info: str | None = None
    reused: bool = False  # True when an existing snapshot was reused


@dataclass
class BackupRecord:
    """Catalog entry describing one on-disk snapshot."""

    id: int
    digest: Digest
    size: int
    storage_path: str
    save_time: datetime = field(default_factory=_utc_now)
    name: str | None = None
    more_info: str | None = None

    @property
    def display_name(self) -> str:
        return self.name or "unnamed"

    @classmethod
    def from_draft(cls, draft: BackupDraft, record_id: int = 0) -> BackupRecord:
        return cls(
            id=record_id,
            digest=draft.digest,
            size=draft.size,
            storage_path=draft.storage_path,
            save_time=draft.save_time,
            name=draft.name,
            more_info=draft.more_info,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize with ``save_time`` as an RFC-3339 UTC string."""
        return {
            "id": self.id,
            "name": self.name,
            "digest": self.digest,
            "size": self.size,
            "storage_path": self.storage_path,
            "save_time": self.save_time.astimezone(timezone.utc).isoformat(),
            "more_info": self.more_info,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BackupRecord:
        save_time = datetime.fromisoformat(data["save_time"])
        if save_time.tzinfo is None:
            save_time = save_time.replace(tzinfo=timezone.utc)
        return cls(
            id=int(data["id"]),
            digest=data["digest"],
            size=int(data.get("size", 0)),
            storage_path=data.get("storage_path", ""),
            save_time=save_time,
            name=data.get("name"),
            more_info=data.get("more_info"),
        )
