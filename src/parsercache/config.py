"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Environment variables  (PARSERCACHE__SERVER__TRANSPORT=http)
  2. parsercache.yaml       (searched in cwd, then platform config dir)
  3. Hardcoded defaults

The config file is optional; all fields have sensible defaults.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import platformdirs
from pydantic import BaseModel
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

_DEFAULT_DATA_DIR = platformdirs.user_data_dir("parsercache")
_DEFAULT_STORAGE_DIR = str(Path(_DEFAULT_DATA_DIR) / "parsers")
_DEFAULT_DB_PATH = str(Path(_DEFAULT_DATA_DIR) / "parsers.db")


def _find_config_file() -> str | None:
    """Return the path of the first parsercache.yaml found, or None."""
    candidates = [
        Path("parsercache.yaml"),
        Path(platformdirs.user_config_dir("parsercache")) / "parsercache.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class ServerSettings(BaseModel):
    transport: Literal["stdio", "http"] = "stdio"
    host: str = "127.0.0.1"
    port: int = 8080
    auth_enabled: bool = True
    auth_key: str = ""
    # Browser origins accepted in addition to localhost
    allowed_origins: list[str] = []
    # get_parser requests carry whole HTML pages
    max_request_bytes: int = 10_000_000


class StorageSettings(BaseModel):
    backend: Literal["disk", "sqlite", "memory"] = "disk"
    dir: str = _DEFAULT_STORAGE_DIR
    db_path: str = _DEFAULT_DB_PATH
    list_limit_max: int = 100


class GeneratorSettings(BaseModel):
    base_url: str = "https://api.openai.com/v1"
    api_key: str = ""
    model: str = "gpt-4o-mini"
    timeout_seconds: float = 120.0
    max_sample_chars: int = 3000
    temperature: float = 0.0


class LoggingSettings(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: PARSERCACHE__SERVER__PORT=9090
        env_prefix="PARSERCACHE__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
    )

    server: ServerSettings = ServerSettings()
    storage: StorageSettings = StorageSettings()
    generator: GeneratorSettings = GeneratorSettings()
    logging: LoggingSettings = LoggingSettings()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
        **kwargs: Any,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,  # Constructor args (highest priority)
            env_settings,  # Environment variables
            YamlConfigSettingsSource(settings_cls),  # YAML file
            # dotenv and file secrets intentionally excluded
        )
