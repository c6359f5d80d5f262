"""Content store persisting records in a SQLite table."""

from __future__ import annotations

import json
import sqlite3
from pathlib import Path
from threading import Lock

from ...errors import StoreError
from ...infra.storage import SQLiteManager
from ..records import ContentRecord
from .base import BaseContentStore


class SQLiteContentStore(BaseContentStore):
    """Persist content records as rows keyed by record key."""

    def __init__(self, manager: SQLiteManager, db_path: Path) -> None:
        self.manager = manager
        self.db_path = db_path
        self._lock = Lock()
        try:
            self._conn = self.manager.connect(db_path)
        except sqlite3.Error as exc:
            raise StoreError(f"Cannot open content store {db_path}: {exc}") from exc

    def get_by_key(self, key: str) -> ContentRecord | None:
        try:
            with self._lock:
                row = self._conn.execute(
                    "SELECT key, text, metadata FROM content_records WHERE key = ?", (key,)
                ).fetchone()
        except sqlite3.Error as exc:
            raise StoreError(f"Read failed for {key}: {exc}") from exc
        if row is None:
            return None
        try:
            metadata = json.loads(row["metadata"] or "{}")
        except json.JSONDecodeError:
            metadata = {}
        return ContentRecord(key=row["key"], text=row["text"], metadata=metadata)

    def create(self, record: ContentRecord) -> None:
        try:
            with self._lock, self._conn:
                self._conn.execute(
                    "INSERT INTO content_records(key, text, metadata, updated_at) "
                    "VALUES (?, ?, ?, datetime('now'))",
                    (record.key, record.text, json.dumps(record.metadata, ensure_ascii=False)),
                )
        except sqlite3.Error as exc:
            raise StoreError(f"Create failed for {record.key}: {exc}") from exc

    def delete_by_key(self, key: str) -> None:
        try:
            with self._lock, self._conn:
                self._conn.execute("DELETE FROM content_records WHERE key = ?", (key,))
        except sqlite3.Error as exc:
            raise StoreError(f"Delete failed for {key}: {exc}") from exc

    def keys(self, prefix: str = "") -> list[str]:
        with self._lock:
            rows = self._conn.execute(
                "SELECT key FROM content_records WHERE key LIKE ? ORDER BY key",
                (f"{prefix}%",),
            ).fetchall()
        return [row["key"] for row in rows]

    def close(self) -> None:
        self.manager.close(self.db_path)


__all__ = ["SQLiteContentStore"]
