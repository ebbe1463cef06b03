"""Unit tests for configuration loading and platform-aware defaults."""

from __future__ import annotations

from pathlib import Path

import platformdirs
import pytest
from pydantic_settings import SettingsConfigDict

from parsercache.config import (
    _DEFAULT_DATA_DIR,
    _DEFAULT_DB_PATH,
    _DEFAULT_STORAGE_DIR,
    Settings,
    StorageSettings,
)


class TestPlatformDefaults:
    """Config defaults use platformdirs instead of hardcoded Unix paths."""

    def test_default_data_dir_matches_platformdirs(self) -> None:
        assert platformdirs.user_data_dir("parsercache") == _DEFAULT_DATA_DIR

    def test_storage_paths_under_data_dir(self) -> None:
        assert _DEFAULT_STORAGE_DIR.startswith(_DEFAULT_DATA_DIR)
        assert _DEFAULT_DB_PATH.startswith(_DEFAULT_DATA_DIR)
        assert _DEFAULT_DB_PATH.endswith("parsers.db")

    def test_storage_settings_use_platform_default(self) -> None:
        settings = StorageSettings()
        assert settings.backend == "disk"
        assert settings.dir == _DEFAULT_STORAGE_DIR
        assert settings.list_limit_max == 100


class TestSettings:
    def test_defaults(self) -> None:
        settings = Settings()
        assert settings.server.transport == "stdio"
        assert settings.generator.model == "gpt-4o-mini"
        assert settings.generator.max_sample_chars == 3000
        assert settings.logging.format == "json"

    def test_environment_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PARSERCACHE__STORAGE__BACKEND", "memory")
        monkeypatch.setenv("PARSERCACHE__GENERATOR__MODEL", "local-model")
        monkeypatch.setenv("PARSERCACHE__SERVER__PORT", "9090")
        settings = Settings()
        assert settings.storage.backend == "memory"
        assert settings.generator.model == "local-model"
        assert settings.server.port == 9090

    def test_invalid_backend_rejected(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PARSERCACHE__STORAGE__BACKEND", "redis")
        with pytest.raises(ValueError):
            Settings()

    def test_yaml_file(self, tmp_path: Path) -> None:
        config = tmp_path / "parsercache.yaml"
        config.write_text(
            "storage:\n  backend: sqlite\n  db_path: /tmp/p.db\ngenerator:\n  temperature: 0.2\n",
            encoding="utf-8",
        )

        class FileSettings(Settings):
            model_config = SettingsConfigDict(yaml_file=str(config))

        settings = FileSettings()
        assert settings.storage.backend == "sqlite"
        assert settings.storage.db_path == "/tmp/p.db"
        assert settings.generator.temperature == pytest.approx(0.2)
