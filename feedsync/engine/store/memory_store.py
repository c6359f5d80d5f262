"""Dict-backed content store for dry runs."""

from __future__ import annotations

from threading import Lock

from ...errors import StoreError
from ..records import ContentRecord
from .base import BaseContentStore


class MemoryContentStore(BaseContentStore):
    """Keep records in process memory; lost on exit."""

    def __init__(self) -> None:
        self._records: dict[str, ContentRecord] = {}
        self._lock = Lock()

    def get_by_key(self, key: str) -> ContentRecord | None:
        with self._lock:
            return self._records.get(key)

    def create(self, record: ContentRecord) -> None:
        with self._lock:
            if record.key in self._records:
                raise StoreError(f"Record already exists: {record.key}")
            self._records[record.key] = record

    def delete_by_key(self, key: str) -> None:
        with self._lock:
            self._records.pop(key, None)

    def keys(self, prefix: str = "") -> list[str]:
        with self._lock:
            return sorted(key for key in self._records if key.startswith(prefix))

    def __len__(self) -> int:
        return len(self._records)


__all__ = ["MemoryContentStore"]
