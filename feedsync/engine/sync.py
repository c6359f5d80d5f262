"""Incremental sync engine: scheduling, watermark filtering and idempotent upserts."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from threading import Event, Lock
from typing import Callable, Iterable, Sequence

import structlog

from ..config import DEFAULT_STATE_KEY, EngineConfig
from ..errors import EngineAlreadyRunning, ItemError, SourceError, StartupError
from ..logging_conf import configure_logging, source_logger
from ..scheduler import BaseScheduler
from .client import BaseSourceClient
from .formatter import format_item, format_profile
from .records import Item, collection_key, item_key, profile_key
from .store import BaseContentStore, UpsertOutcome, record_metadata, upsert_record
from .watermark import WatermarkTable, is_newer, item_id_sort_key

IMMEDIATE_JOB_ID = "feedsync::pass::immediate"
INTERVAL_JOB_ID = "feedsync::pass::interval"


class EngineStatus(str, Enum):
    IDLE = "idle"
    STARTING = "starting"
    RUNNING = "running"
    STOPPED = "stopped"


class SourceStatus(str, Enum):
    OK = "ok"
    EMPTY = "empty"
    FAILED = "failed"
    CANCELLED = "cancelled"


class ItemStatus(str, Enum):
    CREATED = "created"
    REPLACED = "replaced"
    UNCHANGED = "unchanged"
    SKIPPED = "skipped"
    FAILED = "failed"


_UPSERT_TO_ITEM_STATUS = {
    UpsertOutcome.CREATED: ItemStatus.CREATED,
    UpsertOutcome.REPLACED: ItemStatus.REPLACED,
    UpsertOutcome.UNCHANGED: ItemStatus.UNCHANGED,
}


@dataclass(slots=True)
class ItemOutcome:
    item_id: str | None
    status: ItemStatus
    error: str | None = None


@dataclass(slots=True)
class SourceReport:
    """What one pass did for one source."""

    source: str
    status: SourceStatus = SourceStatus.OK
    profile: UpsertOutcome | None = None
    fetched: int = 0
    items: list[ItemOutcome] = field(default_factory=list)
    watermark_before: str | None = None
    watermark_after: str | None = None
    state_saved: bool | None = None
    error: str | None = None

    def count(self, status: ItemStatus) -> int:
        return sum(1 for outcome in self.items if outcome.status is status)

    @property
    def written(self) -> int:
        return self.count(ItemStatus.CREATED) + self.count(ItemStatus.REPLACED)


@dataclass(slots=True)
class PassReport:
    started_at: datetime
    finished_at: datetime | None = None
    sources: list[SourceReport] = field(default_factory=list)
    cancelled: bool = False

    def source(self, name: str) -> SourceReport | None:
        return next((report for report in self.sources if report.source == name), None)

    @property
    def failed_sources(self) -> list[str]:
        return [report.source for report in self.sources if report.status is SourceStatus.FAILED]

    @property
    def items_written(self) -> int:
        return sum(report.written for report in self.sources)

    @property
    def items_failed(self) -> int:
        return sum(report.count(ItemStatus.FAILED) for report in self.sources)

    def summary(self) -> dict[str, int]:
        return {
            "sources": len(self.sources),
            "failed_sources": len(self.failed_sources),
            "items_written": self.items_written,
            "items_failed": self.items_failed,
        }


def select_new_items(items: Sequence[Item | None], watermark: str | None) -> list[Item | None]:
    """Return the newest-first prefix of ``items`` that is newer than ``watermark``.

    The scan stops at the first identified item that is not newer, so
    anything after it is ignored even if out of order. Entries without an
    identifier do not end the prefix; they are skipped when stored.
    """

    if watermark is None:
        return list(items)
    selected: list[Item | None] = []
    for item in items:
        if item is None or not item.id:
            selected.append(item)
            continue
        if not is_newer(item.id, watermark):
            break
        selected.append(item)
    return selected


def _newest_id(items: Iterable[Item | None]) -> str | None:
    return next((item.id for item in items if item is not None and item.id), None)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SyncEngine:
    """Poll tracked sources and keep the content store in step with them."""

    def __init__(
        self,
        client: BaseSourceClient,
        store: BaseContentStore,
        scheduler: BaseScheduler,
        sources: Sequence[str],
        poll_interval: float | timedelta,
        state_key: str = DEFAULT_STATE_KEY,
        clock: Callable[[], datetime] = _utcnow,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        if isinstance(poll_interval, timedelta):
            poll_interval = poll_interval.total_seconds()
        if poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        self.client = client
        self.store = store
        self.scheduler = scheduler
        self.sources: tuple[str, ...] = tuple(dict.fromkeys(sources))
        self.poll_interval = float(poll_interval)
        self.state_key = state_key
        self.clock = clock
        self.logger = logger or configure_logging().bind(component="engine")
        self.watermarks = WatermarkTable(logger=self.logger)
        self.status = EngineStatus.IDLE
        self.missed_passes = 0
        self.last_report: PassReport | None = None
        self._status_lock = Lock()
        self._pass_lock = Lock()
        self._stop_event = Event()

    @classmethod
    def from_config(
        cls,
        config: EngineConfig,
        client: BaseSourceClient,
        store: BaseContentStore,
        scheduler: BaseScheduler,
        **kwargs,
    ) -> "SyncEngine":
        return cls(
            client=client,
            store=store,
            scheduler=scheduler,
            sources=config.sources,
            poll_interval=config.interval_seconds,
            state_key=config.state_key,
            **kwargs,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start(self) -> None:
        """Boot the engine and hand passes to the scheduler.

        Raises ``EngineAlreadyRunning`` unless idle and ``StartupError`` when
        the source client cannot open its session or the scheduler fails.
        """

        self._boot()
        try:
            self.scheduler.schedule_now(IMMEDIATE_JOB_ID, self._scheduled_pass)
            self.scheduler.schedule_interval(
                INTERVAL_JOB_ID, self._scheduled_pass, self.poll_interval
            )
            self.scheduler.start()
        except Exception as exc:  # noqa: BLE001
            self.scheduler.remove(IMMEDIATE_JOB_ID)
            self.scheduler.remove(INTERVAL_JOB_ID)
            with self._status_lock:
                self.status = self._failed_start_status()
            self.logger.error("engine_start_failed", error=str(exc))
            raise StartupError(f"Scheduler could not start: {exc}") from exc
        if self._stop_event.is_set():
            # stop() raced with scheduling; its shutdown may have come too early
            self.scheduler.shutdown()
            return
        self.logger.info("engine_started", poll_interval=self.poll_interval)

    def run_once(self) -> PassReport | None:
        """Boot, run a single pass without scheduling, then stop."""

        self._boot()
        try:
            return self.run_pass()
        finally:
            with self._status_lock:
                self.status = EngineStatus.STOPPED

    def _boot(self) -> None:
        with self._status_lock:
            if self.status is not EngineStatus.IDLE:
                self.logger.warning("engine_already_running", status=self.status.value)
                raise EngineAlreadyRunning(f"Engine is {self.status.value}")
            self.status = EngineStatus.STARTING
        self.logger.info("engine_starting", sources=list(self.sources))

        try:
            self.client.init()
        except Exception as exc:  # noqa: BLE001
            with self._status_lock:
                self.status = self._failed_start_status()
            self.logger.error("engine_start_failed", error=str(exc))
            raise StartupError(f"Source client initialisation failed: {exc}") from exc
        self.logger.info("client_initialised")

        self.load_state()
        self.seed_watermarks()

        with self._status_lock:
            if self._stop_event.is_set():
                self.status = EngineStatus.STOPPED
                self.logger.info("engine_stopped_during_startup")
                raise StartupError("Engine was stopped during startup")
            self.status = EngineStatus.RUNNING

    def _failed_start_status(self) -> EngineStatus:
        # a stop requested during startup is final
        return EngineStatus.STOPPED if self._stop_event.is_set() else EngineStatus.IDLE

    def stop(self, timeout: float | None = None) -> bool:
        """Stop scheduling and wait for an in-flight pass to reach a record boundary.

        Returns ``False`` when the wait timed out or the engine was still
        starting; a starting engine aborts instead of entering ``running``.
        """

        with self._status_lock:
            if self.status in (EngineStatus.IDLE, EngineStatus.STOPPED):
                return True
            self._stop_event.set()
            if self.status is EngineStatus.STARTING:
                self.logger.info("engine_stop_requested_during_startup")
                return False
        self.scheduler.shutdown()
        drained = self._pass_lock.acquire(timeout=-1 if timeout is None else timeout)
        if drained:
            self._pass_lock.release()
        with self._status_lock:
            self.status = EngineStatus.STOPPED
        self.logger.info("engine_stopped", drained=drained)
        return drained

    @property
    def pass_in_flight(self) -> bool:
        return self._pass_lock.locked()

    # ------------------------------------------------------------------
    # Startup recovery
    # ------------------------------------------------------------------
    def load_state(self) -> bool:
        """Restore watermarks from the store; any failure leaves the table empty."""

        try:
            return self.watermarks.load(self.store, self.state_key)
        except Exception as exc:  # noqa: BLE001
            self.watermarks.clear()
            self.logger.error("state_load_failed", key=self.state_key, error=str(exc))
            return False

    def seed_watermarks(self) -> list[str]:
        """Seed unset watermarks from previously stored item collections."""

        seeded: list[str] = []
        for source in self.sources:
            if source in self.watermarks:
                continue
            try:
                newest = self._newest_stored_id(source)
            except Exception as exc:  # noqa: BLE001
                self.logger.error("watermark_seed_failed", source=source, error=str(exc))
                continue
            if newest is not None and self.watermarks.seed(source, newest):
                seeded.append(source)
        return seeded

    def _newest_stored_id(self, source: str) -> str | None:
        record = self.store.get_by_key(collection_key(source))
        if record is None:
            return None
        payload = json.loads(record.text)
        if isinstance(payload, dict):
            payload = payload.get("items")
        if not payload:
            return None
        if not isinstance(payload, list):
            raise ValueError(f"stored collection for {source} is not a list")
        ids = [
            str(entry["id"])
            for entry in payload
            if isinstance(entry, dict) and entry.get("id") not in (None, "")
        ]
        if not ids:
            return None
        return max(ids, key=item_id_sort_key)

    # ------------------------------------------------------------------
    # Passes
    # ------------------------------------------------------------------
    def _scheduled_pass(self) -> None:
        try:
            self.run_pass()
        except Exception as exc:  # noqa: BLE001
            self.logger.error("pass_crashed", error=str(exc), exc_info=True)

    def run_pass(self) -> PassReport | None:
        """Run one pass over every source; skipped if another pass is in flight."""

        if self.status is not EngineStatus.RUNNING or self._stop_event.is_set():
            self.logger.info("pass_skipped_not_running", status=self.status.value)
            return None
        if not self._pass_lock.acquire(blocking=False):
            with self._status_lock:
                self.missed_passes += 1
                missed = self.missed_passes
            self.logger.warning("pass_skipped_in_flight", missed_passes=missed)
            return None
        try:
            report = PassReport(started_at=self.clock())
            self.logger.info("pass_started", sources=len(self.sources))
            for source in self.sources:
                if self._stop_event.is_set():
                    report.cancelled = True
                    break
                report.sources.append(self.sync_source(source))
            report.finished_at = self.clock()
            self.last_report = report
            self.logger.info("pass_finished", cancelled=report.cancelled, **report.summary())
            return report
        finally:
            self._pass_lock.release()

    def sync_source(self, source: str) -> SourceReport:
        log = source_logger(source)
        report = SourceReport(source=source, watermark_before=self.watermarks.get(source))
        try:
            log.info("source_sync_started")
            profile = self.client.get_profile(source)
            if profile is None:
                raise SourceError(source, "profile not found")
            report.profile = upsert_record(
                self.store,
                profile_key(source),
                format_profile(profile),
                record_metadata("profile", account=source),
                logger=log,
            )

            items = list(self.client.get_items(source) or [])
            report.fetched = len(items)
            if not items:
                report.status = SourceStatus.EMPTY
                log.info("no_items_found")
                return report

            new_items = select_new_items(items, report.watermark_before)
            log.info("items_filtered", fetched=len(items), new=len(new_items))
            for item in new_items:
                if self._stop_event.is_set():
                    report.status = SourceStatus.CANCELLED
                    log.info("source_sync_cancelled", processed=len(report.items))
                    return report
                report.items.append(self._store_item(source, item, log))

            newest = _newest_id(new_items)
            if newest is not None and self.watermarks.advance(source, newest):
                report.watermark_after = newest
                report.state_saved = self._persist_state(log)
            log.info(
                "source_sync_finished",
                written=report.written,
                failed=report.count(ItemStatus.FAILED),
                watermark=self.watermarks.get(source),
            )
        except Exception as exc:  # noqa: BLE001
            report.status = SourceStatus.FAILED
            report.error = str(exc)
            log.error("source_sync_failed", error=str(exc))
        return report

    def _store_item(
        self, source: str, item: Item | None, log: structlog.BoundLogger
    ) -> ItemOutcome:
        if item is None or not item.id:
            return ItemOutcome(item_id=None, status=ItemStatus.SKIPPED)
        try:
            outcome = self._upsert_item(source, item, log)
        except ItemError as exc:
            log.error(
                "item_store_failed",
                item_id=item.id,
                error=str(exc),
                item=item.model_dump_json(indent=2),
            )
            return ItemOutcome(item_id=item.id, status=ItemStatus.FAILED, error=str(exc))
        return ItemOutcome(item_id=item.id, status=_UPSERT_TO_ITEM_STATUS[outcome])

    def _upsert_item(self, source: str, item: Item, log: structlog.BoundLogger) -> UpsertOutcome:
        try:
            return upsert_record(
                self.store,
                item_key(item.id),
                format_item(item),
                record_metadata("item", account=source, item_id=item.id),
                logger=log,
            )
        except Exception as exc:  # noqa: BLE001
            raise ItemError(item.id, str(exc)) from exc

    def _persist_state(self, log: structlog.BoundLogger) -> bool:
        now_ms = int(self.clock().timestamp() * 1000)
        try:
            self.watermarks.save(self.store, self.state_key, now_ms=now_ms)
        except Exception as exc:  # noqa: BLE001
            log.error("state_save_failed", error=str(exc))
            return False
        return True


__all__ = [
    "EngineStatus",
    "INTERVAL_JOB_ID",
    "IMMEDIATE_JOB_ID",
    "ItemOutcome",
    "ItemStatus",
    "PassReport",
    "SourceReport",
    "SourceStatus",
    "SyncEngine",
    "select_new_items",
]
