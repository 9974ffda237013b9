"""Tests for the Config system and save path provider."""

from __future__ import annotations

from pathlib import Path

import pytest

from savesnap.config import Config, reset_config
from savesnap.core.path_provider import SavePathProvider
from savesnap.errors import IOFatalError, NotFoundError


@pytest.fixture(autouse=True)
def _clean_config():
    reset_config()
    yield
    reset_config()


@pytest.fixture
def config(tmp_path: Path) -> Config:
    return Config(config_dir=tmp_path)


class TestConfig:
    def test_default_values(self, config: Config, tmp_path: Path) -> None:
        assert config.save_path is None
        assert config.backup_path == tmp_path / "backups"
        assert config.catalog_path == tmp_path / "catalog.json"
        assert config.workers == 0
        assert config.fast_copy is True
        assert config.required_subdirs == []

    def test_set_and_get(self, config: Config) -> None:
        with config.batch_update():
            config.set("backup_path", "/some/path")
        assert config.backup_path == Path("/some/path")

    def test_batch_update_persists(self, config: Config, tmp_path: Path) -> None:
        with config.batch_update():
            config.workers = 6
            config.save_path = Path("/games/save00")
        reloaded = Config(config_dir=tmp_path)
        assert reloaded.workers == 6
        assert reloaded.save_path == Path("/games/save00")

    def test_corrupt_file_falls_back_to_defaults(self, tmp_path: Path) -> None:
        (tmp_path / "config.json").write_text("{not json", encoding="utf-8")
        config = Config(config_dir=tmp_path)
        assert config.fast_copy is True


class TestSavePathProvider:
    def test_not_configured(self, config: Config) -> None:
        with pytest.raises(NotFoundError):
            SavePathProvider(config).get_source_path()

    def test_set_and_get(self, config: Config, save_dir: Path) -> None:
        paths = SavePathProvider(config)
        paths.set_source_path(save_dir)
        assert paths.get_source_path() == save_dir

    def test_validate_ok(self, config: Config, save_dir: Path) -> None:
        config.save_path = save_dir
        config.required_subdirs = ["sub", "empty"]
        assert SavePathProvider(config).validate() == save_dir

    def test_validate_missing_subdir(self, config: Config, save_dir: Path) -> None:
        config.save_path = save_dir
        config.required_subdirs = ["persistent", "stats", "world"]
        with pytest.raises(NotFoundError, match="persistent"):
            SavePathProvider(config).validate()

    def test_validate_missing_path(self, config: Config, tmp_path: Path) -> None:
        config.save_path = tmp_path / "gone"
        with pytest.raises(NotFoundError):
            SavePathProvider(config).validate()

    def test_validate_file(self, config: Config, save_dir: Path) -> None:
        config.save_path = save_dir / "a.txt"
        with pytest.raises(IOFatalError):
            SavePathProvider(config).validate()
