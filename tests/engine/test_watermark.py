from __future__ import annotations

import json

import pytest

from feedsync.engine import EngineState, MemoryContentStore, WatermarkTable, compare_item_ids
from feedsync.engine.records import ContentRecord
from feedsync.engine.sync import select_new_items
from feedsync.errors import StateLoadError, StatePersistError, StoreError

from conftest import make_item, make_items


@pytest.mark.parametrize(
    ("left", "right", "expected"),
    [
        ("10", "9", 1),
        ("9", "10", -1),
        ("0042", "42", 0),
        ("abc", "abd", -1),
        ("abc", "123", 1),
        ("1790000000000000001", "1790000000000000000", 1),
    ],
)
def test_compare_item_ids(left: str, right: str, expected: int) -> None:
    assert compare_item_ids(left, right) == expected


def test_advance_refuses_regression() -> None:
    table = WatermarkTable()
    assert table.advance("alice", "5")
    assert table.advance("alice", "10")
    assert not table.advance("alice", "9")
    assert not table.advance("alice", "10")
    assert table.get("alice") == "10"


def test_seed_only_sets_missing_entries() -> None:
    table = WatermarkTable({"alice": "3"})
    assert not table.seed("alice", "1")
    assert table.seed("bob", "7")
    assert table.snapshot() == {"alice": "3", "bob": "7"}
    assert "bob" in table
    assert len(table) == 2


def test_save_and_load_round_trip_through_store() -> None:
    store = MemoryContentStore()
    table = WatermarkTable({"alice": "3", "bob": "12"})
    table.save(store, "state", now_ms=1700000000000)

    payload = json.loads(store.get_by_key("state").text)
    assert payload == {"watermark": {"alice": "3", "bob": "12"}, "lastUpdated": 1700000000000}

    restored = WatermarkTable()
    assert restored.load(store, "state")
    assert restored.snapshot() == {"alice": "3", "bob": "12"}


def test_load_missing_state_returns_false() -> None:
    table = WatermarkTable()
    assert table.load(MemoryContentStore(), "state") is False
    assert table.snapshot() == {}


def test_load_accepts_numeric_ids() -> None:
    store = MemoryContentStore()
    store.create(ContentRecord(key="state", text=json.dumps({"watermark": {"a": 5}, "lastUpdated": 1})))
    table = WatermarkTable()
    table.load(store, "state")
    assert table.get("a") == "5"


@pytest.mark.parametrize(
    "text",
    [
        "",
        "[]",
        "{\"watermark\": 3}",
        "not json",
        "{\"watermark\": {\"alice\": null}}",
        "{\"watermark\": {\"alice\": \"\"}}",
    ],
)
def test_load_corrupt_state_raises(text: str) -> None:
    store = MemoryContentStore()
    store.create(ContentRecord(key="state", text=text))
    with pytest.raises(StateLoadError):
        WatermarkTable().load(store, "state")


def test_save_wraps_store_errors() -> None:
    class BrokenStore(MemoryContentStore):
        def create(self, record: ContentRecord) -> None:
            raise StoreError("disk full")

    with pytest.raises(StatePersistError):
        WatermarkTable({"a": "1"}).save(BrokenStore(), "state")


def test_engine_state_accepts_field_names() -> None:
    state = EngineState(watermark={"a": "1"}, last_updated=5)
    assert json.loads(state.to_json())["lastUpdated"] == 5


def test_select_without_watermark_keeps_everything() -> None:
    items = make_items("3", "2", "1")
    assert select_new_items(items, None) == items


def test_select_returns_newer_prefix() -> None:
    items = make_items("12", "11", "10", "9")
    assert [item.id for item in select_new_items(items, "10")] == ["12", "11"]


def test_select_stops_at_first_old_item_even_if_unsorted() -> None:
    items = make_items("12", "10", "11", "9")
    assert [item.id for item in select_new_items(items, "10")] == ["12"]


def test_select_carries_unidentified_entries() -> None:
    items = [None, make_item("5"), make_item(None), make_item("4")]
    selected = select_new_items(items, "4")
    assert selected[0] is None
    assert [item.id for item in selected[1:]] == ["5", None]


def test_select_nothing_new() -> None:
    assert select_new_items(make_items("3", "2"), "3") == []
