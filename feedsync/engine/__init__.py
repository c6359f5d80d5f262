"""Engine components: fetch → filter by watermark → format → upsert."""

from .client import BaseSourceClient, HttpSourceClient
from .formatter import format_item, format_profile
from .records import ContentRecord, Item, Profile
from .store import (
    BaseContentStore,
    MemoryContentStore,
    SQLiteContentStore,
    UpsertOutcome,
    upsert_record,
)
from .sync import (
    EngineStatus,
    ItemOutcome,
    ItemStatus,
    PassReport,
    SourceReport,
    SourceStatus,
    SyncEngine,
    select_new_items,
)
from .watermark import EngineState, WatermarkTable, compare_item_ids

__all__ = [
    "BaseContentStore",
    "BaseSourceClient",
    "ContentRecord",
    "EngineState",
    "EngineStatus",
    "HttpSourceClient",
    "Item",
    "ItemOutcome",
    "ItemStatus",
    "MemoryContentStore",
    "PassReport",
    "Profile",
    "SQLiteContentStore",
    "SourceReport",
    "SourceStatus",
    "SyncEngine",
    "UpsertOutcome",
    "WatermarkTable",
    "compare_item_ids",
    "format_item",
    "format_profile",
    "select_new_items",
    "upsert_record",
]
