"""Pydantic models used across feedsync configuration flow."""

from __future__ import annotations

import os
from datetime import timedelta
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

DEFAULT_STATE_KEY = "feedsync-state"


class EngineConfig(BaseModel):
    """Polling cadence and the ordered set of tracked accounts."""

    poll_interval: float | dict[str, float] = Field(
        default=900,
        description="Seconds between pass starts, or timedelta kwargs such as {'minutes': 15}.",
    )
    sources: list[str] = Field(default_factory=list)
    state_key: str = DEFAULT_STATE_KEY

    @field_validator("sources", mode="before")
    @classmethod
    def _coerce_sources(cls, value: Any) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            value = [part for part in value.split(",")]
        if not isinstance(value, (list, tuple)):
            raise ValueError("sources expects a list of account identifiers")
        cleaned: list[str] = []
        for entry in value:
            name = str(entry).strip()
            if not name:
                raise ValueError("sources cannot contain blank identifiers")
            if name in cleaned:
                raise ValueError(f"duplicate source identifier: {name}")
            cleaned.append(name)
        return cleaned

    @model_validator(mode="after")
    def _validate_interval(self) -> "EngineConfig":
        if self.interval_seconds <= 0:
            raise ValueError("poll_interval must be positive")
        return self

    @property
    def interval_seconds(self) -> float:
        if isinstance(self.poll_interval, dict):
            try:
                return timedelta(**self.poll_interval).total_seconds()
            except TypeError as exc:
                raise ValueError(f"Invalid poll_interval kwargs: {self.poll_interval}") from exc
        return float(self.poll_interval)


class ClientConfig(BaseModel):
    """HTTP source client settings."""

    base_url: str = "http://localhost:8080/api"
    token: str | None = None
    timeout: float = 20.0
    items_limit: int = 20
    max_retries: int = 2
    backoff_base: float = 1.0

    @model_validator(mode="after")
    def _validate_limits(self) -> "ClientConfig":
        if self.items_limit < 1:
            raise ValueError("items_limit must be >= 1")
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.backoff_base < 0:
            raise ValueError("backoff_base must be >= 0")
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")
        return self

    def resolved_token(self) -> str | None:
        return self.token or os.environ.get("FEEDSYNC_TOKEN")


class StoreConfig(BaseModel):
    """Content store location."""

    path: Path = Field(default=Path("content.db"))

    @field_validator("path", mode="before")
    @classmethod
    def _coerce_path(cls, value: Any) -> Path:
        return Path(value)

    def resolved_path(self, base_dir: Path) -> Path:
        """Return the store path relative to the project data directory."""

        if not self.path.is_absolute():
            return (base_dir / self.path).resolve()
        return self.path


class GlobalConfig(BaseModel):
    """Top-level configuration file contents."""

    engine: EngineConfig = Field(default_factory=EngineConfig)
    client: ClientConfig = Field(default_factory=ClientConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)


__all__ = [
    "ClientConfig",
    "DEFAULT_STATE_KEY",
    "EngineConfig",
    "GlobalConfig",
    "StoreConfig",
]
