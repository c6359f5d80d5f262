"""Content store SPI and implementations."""

from .base import BaseContentStore, UpsertOutcome, record_metadata, upsert_record
from .memory_store import MemoryContentStore
from .sqlite_store import SQLiteContentStore

__all__ = [
    "BaseContentStore",
    "MemoryContentStore",
    "SQLiteContentStore",
    "UpsertOutcome",
    "record_metadata",
    "upsert_record",
]
