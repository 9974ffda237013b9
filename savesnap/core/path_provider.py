"""Save path provider — where the live save data lives, and whether it looks valid."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from savesnap.errors import IOFatalError, NotFoundError

if TYPE_CHECKING:
    from savesnap.config import Config


class SavePathProvider:
    """Reads and writes the configured save path."""

    def __init__(self, config: Config) -> None:
        self._config = config

    def get_source_path(self) -> Path:
        path = self._config.save_path
        if path is None:
            raise NotFoundError("Save path is not configured")
        return path

    def set_source_path(self, path: str | Path) -> None:
        self._config.save_path = Path(path)
        logger.info(f"Save path set to {path}")

    def validate(self) -> Path:
        """
        Check the configured save path.

        It must exist, be a readable directory, and contain every entry of
        ``config.required_subdirs``.
        """
        path = self.get_source_path()
        if not path.exists():
            raise NotFoundError(f"Save path does not exist: {path}")
        if not path.is_dir():
            raise IOFatalError(f"Save path is not a directory: {path}")

        try:
            subdirs = {child.name for child in path.iterdir() if child.is_dir()}
        except OSError as e:
            raise IOFatalError(f"Cannot read directory {path}: {e}") from e

        missing = [name for name in self._config.required_subdirs if name not in subdirs]
        if missing:
            raise NotFoundError(
                f"Save path {path} is missing save folder(s): {', '.join(missing)}"
            )

        logger.info(f"Save path is valid: {path}")
        return path
