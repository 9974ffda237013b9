"""Application entry point — wires services and runs a CLI command.

Usage:
    python main.py save [--name NAME] [--note TEXT]
    python main.py list
    python main.py restore ID [--target DIR]
    python main.py delete ID
    python main.py stats
    python main.py path [NEW_PATH]
    python main.py verify-path
    python main.py open ID
    python main.py open-log
"""

from __future__ import annotations

import argparse
import sys

from loguru import logger

from savesnap.config import Config, get_config
from savesnap.context import AppContext
from savesnap.core.backup import BackupManager
from savesnap.core.copy_engine import CopyEngine
from savesnap.core.dashboard import get_dashboard_stats
from savesnap.core.path_provider import SavePathProvider
from savesnap.core.restore import RestoreManager
from savesnap.core.snapshot_store import SnapshotStore
from savesnap.data.catalog import BackupCatalog
from savesnap.errors import DuplicateDigestError, SnapshotError
from savesnap.logger import setup_logger
from savesnap.utils import format_size, open_folder


def create_context(config: Config | None = None) -> AppContext:
    """Wire all services and return an AppContext."""
    config = config or get_config()

    paths = SavePathProvider(config)
    catalog = BackupCatalog(config.catalog_path)
    catalog.load()

    copy_engine = CopyEngine.from_config(config)
    snapshot_store = SnapshotStore(
        config.backup_path,
        copy_engine,
        workers=config.workers,
        lock_timeout=config.lock_timeout,
    )
    restore_manager = RestoreManager(snapshot_store, copy_engine)
    backup_manager = BackupManager(snapshot_store, restore_manager, catalog, paths)

    return AppContext(
        config=config,
        paths=paths,
        catalog=catalog,
        copy_engine=copy_engine,
        snapshot_store=snapshot_store,
        restore_manager=restore_manager,
        backup_manager=backup_manager,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="savesnap",
        description="Snapshot and restore a game's save folder.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug output")
    sub = parser.add_subparsers(dest="command", required=True)

    save = sub.add_parser("save", help="Back up the save folder")
    save.add_argument("--name", help="Backup name (default: timestamp)")
    save.add_argument("--note", help="Free-form annotation")

    sub.add_parser("list", help="List backups, newest first")

    restore = sub.add_parser("restore", help="Replace the save folder with a backup")
    restore.add_argument("id", type=int)
    restore.add_argument("--target", help="Restore here instead of the save folder")

    delete = sub.add_parser("delete", help="Delete a backup and its files")
    delete.add_argument("id", type=int)

    sub.add_parser("stats", help="Backup count and total size")

    path = sub.add_parser("path", help="Show or set the save folder")
    path.add_argument("new_path", nargs="?")

    sub.add_parser("verify-path", help="Check that the save folder looks valid")

    open_cmd = sub.add_parser("open", help="Open a backup in the file manager")
    open_cmd.add_argument("id", type=int)

    sub.add_parser("open-log", help="Open the log folder in the file manager")
    return parser


def run_command(ctx: AppContext, args: argparse.Namespace) -> int:
    """Execute one parsed command. Raises SnapshotError on failure."""
    manager = ctx.backup_manager

    if args.command == "save":
        try:
            record = manager.create_backup(name=args.name, more_info=args.note)
        except DuplicateDigestError as e:
            print(str(e))
            return 0
        print(f"Saved #{record.id} {record.display_name} ({format_size(record.size)})")

    elif args.command == "list":
        backups = manager.list_backups()
        if not backups:
            print("No backups yet.")
        for b in backups:
            print(
                f"{b.id:>4}  {b.save_time:%Y-%m-%d %H:%M:%S}  "
                f"{format_size(b.size):>10}  {b.digest[:12]}  {b.display_name}"
            )

    elif args.command == "restore":
        result = manager.restore_backup(args.id, target=args.target)
        print(result.message)

    elif args.command == "delete":
        manager.delete_backup(args.id)
        print(f"Deleted backup #{args.id}")

    elif args.command == "stats":
        stats = get_dashboard_stats(ctx.catalog)
        print(f"Backups: {stats.backup_count}")
        print(f"Total size: {format_size(stats.total_size)}")

    elif args.command == "path":
        if args.new_path:
            ctx.paths.set_source_path(args.new_path)
        print(ctx.paths.get_source_path())

    elif args.command == "verify-path":
        print(f"Save path OK: {ctx.paths.validate()}")

    elif args.command == "open":
        manager.open_backup(args.id)

    elif args.command == "open-log":
        log_dir = ctx.config.log_dir
        log_dir.mkdir(parents=True, exist_ok=True)
        open_folder(log_dir)

    return 0


def main(argv: list[str] | None = None) -> int:
    """Application entry point."""
    args = build_parser().parse_args(argv)
    config = get_config()
    setup_logger(config.log_dir, verbose=args.verbose)

    ctx = create_context(config)
    try:
        return run_command(ctx, args)
    except SnapshotError as e:
        logger.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
