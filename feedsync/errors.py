"""Exception hierarchy for feedsync.

Hierarchy::

    FeedSyncError
    ├── ConfigurationError    - config loading and validation
    ├── StartupError          - engine start aborted (session init failed)
    ├── EngineAlreadyRunning  - start() on an engine that is not idle
    ├── AuthError             - source session rejected the credentials
    ├── SourceError           - profile/items fetch failed for one source
    ├── ItemError             - one item could not be formatted or stored
    ├── StoreError            - content store read/write failure
    ├── StateLoadError        - persisted engine state unreadable
    └── StatePersistError     - persisted engine state could not be written
"""

from __future__ import annotations


class FeedSyncError(Exception):
    """Base class for every feedsync error."""


class ConfigurationError(FeedSyncError):
    """Invalid or unreadable configuration."""


class StartupError(FeedSyncError):
    """The engine could not start; never retried."""


class EngineAlreadyRunning(FeedSyncError):
    """start() was called while the engine was not idle."""


class AuthError(FeedSyncError):
    """The upstream session refused our credentials."""


class SourceError(FeedSyncError):
    """Fetching a source's profile or items failed."""

    def __init__(self, source: str, message: str) -> None:
        super().__init__(f"{source}: {message}")
        self.source = source


class ItemError(FeedSyncError):
    """A single item could not be formatted or stored."""

    def __init__(self, item_id: str | None, message: str) -> None:
        super().__init__(f"item {item_id}: {message}")
        self.item_id = item_id


class StoreError(FeedSyncError):
    """The content store failed a read or write."""


class StateLoadError(FeedSyncError):
    """Persisted engine state exists but cannot be decoded."""


class StatePersistError(FeedSyncError):
    """Persisting engine state failed."""


__all__ = [
    "AuthError",
    "ConfigurationError",
    "EngineAlreadyRunning",
    "FeedSyncError",
    "ItemError",
    "SourceError",
    "StartupError",
    "StateLoadError",
    "StatePersistError",
    "StoreError",
]
