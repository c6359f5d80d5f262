"""Configuration package exports."""

from .loader import ConfigLocator, ConfigRepository
from .models import DEFAULT_STATE_KEY, ClientConfig, EngineConfig, GlobalConfig, StoreConfig

__all__ = [
    "ClientConfig",
    "ConfigLocator",
    "ConfigRepository",
    "DEFAULT_STATE_KEY",
    "EngineConfig",
    "GlobalConfig",
    "StoreConfig",
]
