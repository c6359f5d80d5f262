"""Configuration loading helpers for feedsync."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

import yaml
from pydantic import ValidationError

from ..errors import ConfigurationError
from .models import GlobalConfig

CONFIG_EXTENSIONS = (".yaml", ".yml", ".json")
GLOBAL_CONFIG_FILENAME = "feedsync.yaml"


def _read_file(path: Path) -> dict:
    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix in (".yaml", ".yml"):
            data = yaml.safe_load(text) or {}
        else:
            data = json.loads(text)
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise ConfigurationError(f"Cannot parse configuration file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file must contain a mapping: {path}")
    return data


def _write_file(path: Path, payload: dict) -> None:
    with path.open("w", encoding="utf-8") as stream:
        if path.suffix in (".yaml", ".yml"):
            yaml.safe_dump(payload, stream, allow_unicode=True, sort_keys=False)
        else:
            json.dump(payload, stream, indent=2, ensure_ascii=False)


@dataclass(slots=True)
class ConfigLocator:
    """Resolve important paths from project root."""

    project_root: Path | None = None
    data_dir: Path | None = None
    logs_dir: Path | None = None

    def __post_init__(self) -> None:
        env_root = os.environ.get("FEEDSYNC_HOME")
        if env_root:
            root = Path(env_root).expanduser().resolve()
        else:
            root = (self.project_root or Path(__file__).resolve().parents[2]).resolve()
        self.project_root = root
        self.data_dir = (root / "data").resolve()
        self.logs_dir = (root / "logs").resolve()
        self.ensure_directories()

    def ensure_directories(self) -> None:
        for directory in (self.data_dir, self.logs_dir):
            directory.mkdir(parents=True, exist_ok=True)

    def global_config_path(self) -> Path:
        return self.data_dir / GLOBAL_CONFIG_FILENAME


class ConfigRepository:
    """Repository encapsulating config IO and schema validation."""

    def __init__(self, locator: ConfigLocator | None = None, path: Path | None = None) -> None:
        self.locator = locator or ConfigLocator()
        self._path = path
        self._cache: GlobalConfig | None = None

    @property
    def path(self) -> Path:
        return self._path or self.locator.global_config_path()

    def load(self) -> GlobalConfig:
        if self._cache is not None:
            return self._cache
        path = self.path
        if path.exists():
            if path.suffix not in CONFIG_EXTENSIONS:
                raise ConfigurationError(f"Unsupported configuration format: {path}")
            payload = _read_file(path)
            try:
                config = GlobalConfig.model_validate(payload)
            except ValidationError as exc:
                raise ConfigurationError(f"Invalid configuration in {path}:\n{exc}") from exc
        else:
            config = GlobalConfig()
            self.save(config)
        self._cache = config
        return config

    def save(self, config: GlobalConfig) -> Path:
        path = self.path
        path.parent.mkdir(parents=True, exist_ok=True)
        _write_file(path, config.model_dump(mode="json"))
        self._cache = config
        return path

    def store_path(self) -> Path:
        return self.load().store.resolved_path(self.locator.data_dir)


__all__ = ["CONFIG_EXTENSIONS", "ConfigLocator", "ConfigRepository", "GLOBAL_CONFIG_FILENAME"]
