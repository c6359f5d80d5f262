"""Per-source watermark tracking and its persisted form."""

from __future__ import annotations

import time
from threading import Lock
from typing import Any, Iterator, Mapping

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..errors import StateLoadError, StatePersistError, StoreError
from .store.base import BaseContentStore, record_metadata, upsert_record


def item_id_sort_key(item_id: str) -> tuple[int, int, str]:
    if item_id.isdigit():
        stripped = item_id.lstrip("0") or "0"
        return (0, len(stripped), stripped)
    return (1, 0, item_id)


def compare_item_ids(left: str, right: str) -> int:
    """Total order over item identifiers.

    All-digit identifiers compare as integers (so ``"10" > "9"``); any
    other identifier compares lexically and sorts after numeric ones.
    """

    left_key, right_key = item_id_sort_key(left), item_id_sort_key(right)
    if left_key == right_key:
        return 0
    return 1 if left_key > right_key else -1


def is_newer(candidate: str, watermark: str) -> bool:
    return compare_item_ids(candidate, watermark) > 0


class EngineState(BaseModel):
    """Serialised watermark table stored under a fixed key."""

    model_config = ConfigDict(populate_by_name=True)

    watermark: dict[str, str] = Field(default_factory=dict)
    last_updated: int = Field(default=0, alias="lastUpdated")

    @field_validator("watermark", mode="before")
    @classmethod
    def _coerce_ids(cls, value: Any) -> Any:
        if not isinstance(value, dict):
            return value
        coerced: dict[str, str] = {}
        for source, item_id in value.items():
            if item_id is None or str(item_id) == "":
                raise ValueError(f"watermark for {source} has no item id")
            coerced[str(source)] = str(item_id)
        return coerced

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)


class WatermarkTable:
    """Mapping of source id to the newest item id processed for it."""

    def __init__(
        self,
        initial: Mapping[str, str] | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self._marks: dict[str, str] = dict(initial or {})
        self._lock = Lock()
        self.logger = logger or structlog.get_logger("feedsync.watermark")

    def __contains__(self, source: object) -> bool:
        with self._lock:
            return source in self._marks

    def __len__(self) -> int:
        with self._lock:
            return len(self._marks)

    def __iter__(self) -> Iterator[str]:
        return iter(self.snapshot())

    def get(self, source: str) -> str | None:
        with self._lock:
            return self._marks.get(source)

    def snapshot(self) -> dict[str, str]:
        with self._lock:
            return dict(self._marks)

    def seed(self, source: str, item_id: str) -> bool:
        """Set a watermark only if the source has none yet."""

        with self._lock:
            if source in self._marks:
                return False
            self._marks[source] = item_id
        self.logger.info("watermark_seeded", source=source, item_id=item_id)
        return True

    def advance(self, source: str, item_id: str) -> bool:
        """Move a source's watermark forward; refuse anything not newer."""

        with self._lock:
            current = self._marks.get(source)
            if current is not None and not is_newer(item_id, current):
                refused = True
            else:
                self._marks[source] = item_id
                refused = False
        if refused:
            self.logger.warning(
                "watermark_regression_refused", source=source, current=current, proposed=item_id
            )
            return False
        self.logger.debug("watermark_advanced", source=source, previous=current, item_id=item_id)
        return True

    def restore(self, state: EngineState) -> None:
        with self._lock:
            self._marks = dict(state.watermark)

    def clear(self) -> None:
        with self._lock:
            self._marks.clear()

    def to_state(self, now_ms: int | None = None) -> EngineState:
        stamp = now_ms if now_ms is not None else int(time.time() * 1000)
        return EngineState(watermark=self.snapshot(), last_updated=stamp)

    # ------------------------------------------------------------------
    def load(self, store: BaseContentStore, key: str) -> bool:
        """Replace the table with the persisted state; ``False`` if none exists.

        Raises ``StoreError`` if the store cannot be read and
        ``StateLoadError`` if the stored state cannot be decoded.
        """

        record = store.get_by_key(key)
        if record is None:
            return False
        try:
            state = EngineState.model_validate_json(record.text)
        except ValidationError as exc:
            raise StateLoadError(f"Stored state under {key} is corrupt: {exc}") from exc
        self.restore(state)
        self.logger.info("state_loaded", key=key, sources=len(state.watermark))
        return True

    def save(self, store: BaseContentStore, key: str, now_ms: int | None = None) -> EngineState:
        state = self.to_state(now_ms)
        try:
            upsert_record(store, key, state.to_json(), record_metadata("state"), logger=self.logger)
        except StoreError as exc:
            raise StatePersistError(f"Saving state under {key} failed: {exc}") from exc
        self.logger.info("state_saved", key=key, sources=len(state.watermark))
        return state


__all__ = ["EngineState", "WatermarkTable", "compare_item_ids", "is_newer", "item_id_sort_key"]
