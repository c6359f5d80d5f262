"""Pytest configuration providing fake collaborators and shared fixtures."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Iterable, Sequence

import pytest

from feedsync.engine import Item, MemoryContentStore, Profile, SyncEngine
from feedsync.engine.client import BaseSourceClient
from feedsync.engine.records import ContentRecord
from feedsync.errors import SourceError, StoreError
from feedsync.logging_conf import configure_logging
from feedsync.scheduler import BaseScheduler

FIXED_NOW = datetime(2024, 5, 20, 12, 0, 0, tzinfo=timezone.utc)


class SimulatedCrash(BaseException):
    """Stands in for the process dying mid-pass."""


@pytest.fixture(scope="session", autouse=True)
def feedsync_home(tmp_path_factory: pytest.TempPathFactory) -> Iterable[Path]:
    home = tmp_path_factory.mktemp("feedsync-home")
    with pytest.MonkeyPatch.context() as patch:
        patch.setenv("FEEDSYNC_HOME", str(home))
        configure_logging()
        yield home


class FakeSourceClient(BaseSourceClient):
    """In-memory source client with per-source failure injection."""

    def __init__(
        self,
        profiles: dict[str, Profile | None] | None = None,
        items: dict[str, Sequence[Item | None]] | None = None,
    ) -> None:
        self.profiles: dict[str, Profile | None] = dict(profiles or {})
        self.items: dict[str, list[Item | None]] = {k: list(v) for k, v in (items or {}).items()}
        self.failing_sources: set[str] = set()
        self.init_error: Exception | None = None
        self.init_calls = 0
        self.calls: list[tuple[str, str]] = []
        self.on_get_items: Callable[[str], None] | None = None
        self.on_init: Callable[[], None] | None = None

    def init(self) -> None:
        self.init_calls += 1
        if self.on_init is not None:
            self.on_init()
        if self.init_error is not None:
            raise self.init_error

    def get_profile(self, source_id: str) -> Profile | None:
        self.calls.append(("profile", source_id))
        if source_id in self.failing_sources:
            raise SourceError(source_id, "upstream unavailable")
        if source_id not in self.profiles:
            return Profile(username=source_id, name=source_id.title())
        return self.profiles[source_id]

    def get_items(self, source_id: str) -> list[Item | None]:
        self.calls.append(("items", source_id))
        if self.on_get_items is not None:
            self.on_get_items(source_id)
        return list(self.items.get(source_id, []))


class CountingStore(MemoryContentStore):
    """Memory store that journals writes and can fail selected keys."""

    def __init__(self) -> None:
        super().__init__()
        self.operations: list[tuple[str, str]] = []
        self.fail_create: set[str] = set()
        self.fail_get: set[str] = set()
        self.fail_all_writes = False
        self.crash_on_create: str | None = None

    def get_by_key(self, key: str) -> ContentRecord | None:
        if key in self.fail_get:
            raise StoreError(f"read failed for {key}")
        return super().get_by_key(key)

    def create(self, record: ContentRecord) -> None:
        if record.key == self.crash_on_create:
            raise SimulatedCrash(record.key)
        if self.fail_all_writes or record.key in self.fail_create:
            raise StoreError(f"create failed for {record.key}")
        self.operations.append(("create", record.key))
        super().create(record)

    def delete_by_key(self, key: str) -> None:
        if self.fail_all_writes:
            raise StoreError(f"delete failed for {key}")
        self.operations.append(("delete", key))
        super().delete_by_key(key)

    def ops_for(self, prefix: str) -> list[tuple[str, str]]:
        return [op for op in self.operations if op[1].startswith(prefix)]


class ManualScheduler(BaseScheduler):
    """Scheduler that only runs jobs when a test asks it to."""

    def __init__(self) -> None:
        self.started = False
        self.once: dict[str, Callable[[], object]] = {}
        self.intervals: dict[str, tuple[Callable[[], object], float]] = {}

    def start(self) -> None:
        self.started = True

    def shutdown(self) -> None:
        self.started = False
        self.once.clear()
        self.intervals.clear()

    def schedule_now(self, job_id: str, callback: Callable[[], object]) -> None:
        self.once[job_id] = callback

    def schedule_interval(self, job_id: str, callback: Callable[[], object], seconds: float) -> None:
        self.intervals[job_id] = (callback, seconds)

    def remove(self, job_id: str) -> None:
        self.once.pop(job_id, None)
        self.intervals.pop(job_id, None)

    def run_pending(self) -> None:
        pending = list(self.once.values())
        self.once.clear()
        for callback in pending:
            callback()

    def tick(self) -> None:
        for callback, _seconds in list(self.intervals.values()):
            callback()


def make_item(item_id: str | None, username: str = "alice", **overrides: Any) -> Item:
    payload: dict[str, Any] = {
        "id": item_id,
        "username": username,
        "text": f"post {item_id}",
        "timestamp": 1716206400,
        "likes": 1,
        "reposts": 2,
        "replies": 3,
    }
    payload.update(overrides)
    return Item.model_validate(payload)


def make_items(*ids: str, username: str = "alice") -> list[Item | None]:
    return [make_item(item_id, username=username) for item_id in ids]


@pytest.fixture
def fake_client() -> FakeSourceClient:
    return FakeSourceClient()


@pytest.fixture
def store() -> CountingStore:
    return CountingStore()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def engine_factory(
    fake_client: FakeSourceClient, store: CountingStore, scheduler: ManualScheduler
) -> Callable[..., SyncEngine]:
    def _builder(sources: Sequence[str] = ("alice",), **overrides: Any) -> SyncEngine:
        kwargs: dict[str, Any] = {
            "client": fake_client,
            "store": store,
            "scheduler": scheduler,
            "sources": list(sources),
            "poll_interval": 60,
            "clock": lambda: FIXED_NOW,
        }
        kwargs.update(overrides)
        return SyncEngine(**kwargs)

    return _builder
