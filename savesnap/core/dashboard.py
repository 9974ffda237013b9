"""Dashboard statistics over the backup catalog."""

from __future__ import annotations

from dataclasses import dataclass

from loguru import logger

from savesnap.data.catalog import CatalogProtocol


@dataclass
class DashboardStats:
    backup_count: int
    total_size: int  # bytes
    is_ready: bool


def get_dashboard_stats(catalog: CatalogProtocol) -> DashboardStats:
    backups = catalog.list_all()
    total = sum(b.size for b in backups)
    logger.debug(f"Dashboard: {len(backups)} backup(s), {total} bytes")
    return DashboardStats(backup_count=len(backups), total_size=total, is_ready=True)
