"""Content store Service Provider Interface and the idempotent upsert."""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any

import structlog

from ..records import ContentRecord

RECORD_SOURCE = "feedsync"


class UpsertOutcome(str, Enum):
    """What an upsert did to the store."""

    UNCHANGED = "unchanged"
    CREATED = "created"
    REPLACED = "replaced"


class BaseContentStore(ABC):
    """Uniform store contract; implementations raise ``StoreError`` on failure."""

    @abstractmethod
    def get_by_key(self, key: str) -> ContentRecord | None:
        """Return the record stored under ``key`` or ``None``."""

    @abstractmethod
    def create(self, record: ContentRecord) -> None:
        """Persist a new record."""

    @abstractmethod
    def delete_by_key(self, key: str) -> None:
        """Remove the record stored under ``key`` if any."""

    def close(self) -> None:
        """Release underlying resources."""


def record_metadata(kind: str, **extra: Any) -> dict[str, Any]:
    metadata: dict[str, Any] = {
        "source": RECORD_SOURCE,
        "type": "text",
        "kind": kind,
        "created_at": int(time.time() * 1000),
        "is_shared": True,
    }
    metadata.update(extra)
    return metadata


def upsert_record(
    store: BaseContentStore,
    key: str,
    text: str,
    metadata: dict[str, Any] | None = None,
    logger: structlog.BoundLogger | None = None,
) -> UpsertOutcome:
    """Write ``text`` under ``key`` unless an identical record already exists.

    A changed record is deleted before the new one is created, so the store
    never holds two records for one key.
    """

    log = logger or structlog.get_logger("feedsync.store")
    existing = store.get_by_key(key)
    if existing is not None and existing.text == text:
        log.debug("record_unchanged", key=key)
        return UpsertOutcome.UNCHANGED
    if existing is not None:
        store.delete_by_key(key)
        log.debug("record_deleted", key=key)
    store.create(ContentRecord(key=key, text=text, metadata=dict(metadata or {})))
    outcome = UpsertOutcome.REPLACED if existing is not None else UpsertOutcome.CREATED
    log.info("record_stored", key=key, outcome=outcome.value)
    return outcome


__all__ = ["BaseContentStore", "RECORD_SOURCE", "UpsertOutcome", "record_metadata", "upsert_record"]
