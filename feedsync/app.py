"""Typer CLI entrypoint for feedsync."""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Annotated, Optional

import typer
from pydantic import ValidationError
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .config import ConfigLocator, ConfigRepository, GlobalConfig
from .engine import (
    BaseContentStore,
    EngineState,
    HttpSourceClient,
    ItemStatus,
    MemoryContentStore,
    PassReport,
    SQLiteContentStore,
    SyncEngine,
    WatermarkTable,
)
from .errors import FeedSyncError
from .infra import SQLiteManager
from .logging_conf import (
    available_source_logs,
    configure_logging,
    main_log_path,
    source_log_path,
    tail_log,
)
from .scheduler import APSchedulerAdapter

app = typer.Typer(help="feedsync command line", no_args_is_help=True, rich_markup_mode=None)
state_app = typer.Typer(name="state", help="Inspect or reset persisted watermarks", no_args_is_help=True)
logs_app = typer.Typer(name="logs", help="Inspect log files", no_args_is_help=True)
app.add_typer(state_app)
app.add_typer(logs_app)

console = Console()


@dataclass
class AppState:
    repository: ConfigRepository
    storage: SQLiteManager
    verbose: bool = False

    @property
    def config(self) -> GlobalConfig:
        return self.repository.load()


def build_state(verbose: bool, config_path: Path | None = None) -> AppState:
    configure_logging(verbose=verbose)
    repository = ConfigRepository(ConfigLocator(), path=config_path)
    return AppState(repository=repository, storage=SQLiteManager(), verbose=verbose)


def _get_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if state is None:
        state = build_state(verbose=False)
        ctx.obj = state
    return state


def _open_store(state: AppState, memory: bool = False) -> BaseContentStore:
    if memory:
        return MemoryContentStore()
    return SQLiteContentStore(state.storage, state.repository.store_path())


def _fail(message: str) -> None:
    console.print(f"[red]{escape(message)}[/red]")
    raise typer.Exit(code=1)


def _render_report(report: PassReport) -> Table:
    table = Table(title="Pass report", box=box.SIMPLE_HEAVY)
    table.add_column("Source", style="cyan")
    table.add_column("Status")
    table.add_column("Fetched", justify="right")
    table.add_column("Written", justify="right")
    table.add_column("Failed", justify="right")
    table.add_column("Watermark")
    table.add_column("Error", style="red")
    for source in report.sources:
        table.add_row(
            source.source,
            source.status.value,
            str(source.fetched),
            str(source.written),
            str(source.count(ItemStatus.FAILED)),
            source.watermark_after or source.watermark_before or "-",
            source.error or "",
        )
    return table


@app.callback()
def main(
    ctx: typer.Context,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging")] = False,
    config: Annotated[
        Optional[Path], typer.Option("--config", "-c", help="Path to a feedsync.yaml file")
    ] = None,
) -> None:
    ctx.obj = build_state(verbose=verbose, config_path=config)


@app.command("run")
def run(
    ctx: typer.Context,
    once: Annotated[bool, typer.Option("--once", help="Run a single pass and exit")] = False,
    memory: Annotated[
        bool, typer.Option("--memory", help="Use an in-memory store (nothing is persisted)")
    ] = False,
) -> None:
    """Start the sync engine."""

    state = _get_state(ctx)
    try:
        config = state.config
        if not config.engine.sources:
            _fail("No sources configured; add account ids under engine.sources")
        store = _open_store(state, memory=memory)
    except FeedSyncError as exc:
        _fail(str(exc))
        return
    client = HttpSourceClient(config.client)
    engine = SyncEngine.from_config(config.engine, client, store, APSchedulerAdapter())
    try:
        if once:
            report = engine.run_once()
            if report is not None:
                console.print(_render_report(report))
            return
        engine.start()
        console.print(
            f"[green]Syncing {len(engine.sources)} source(s) every {engine.poll_interval:g}s; "
            "press Ctrl+C to stop[/green]"
        )
        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            console.print("Stopping…")
            engine.stop(timeout=30)
    except FeedSyncError as exc:
        _fail(str(exc))
    finally:
        client.close()
        store.close()


@app.command("sources")
def sources(ctx: typer.Context) -> None:
    """List configured sources and their current watermark."""

    state = _get_state(ctx)
    try:
        config = state.config
        store = _open_store(state)
        table = WatermarkTable()
        table.load(store, config.engine.state_key)
    except FeedSyncError as exc:
        _fail(str(exc))
        return
    grid = Table(title="Sources", box=box.SIMPLE_HEAVY)
    grid.add_column("Source", style="cyan")
    grid.add_column("Watermark")
    for name in config.engine.sources:
        grid.add_row(name, table.get(name) or "-")
    console.print(grid)
    store.close()


@state_app.command("show")
def state_show(ctx: typer.Context) -> None:
    """Print the persisted watermark table."""

    state = _get_state(ctx)
    try:
        config = state.config
        store = _open_store(state)
        record = store.get_by_key(config.engine.state_key)
        store.close()
    except FeedSyncError as exc:
        _fail(str(exc))
        return
    if record is None:
        console.print("No persisted state.")
        return
    try:
        saved = EngineState.model_validate_json(record.text)
    except ValidationError:
        _fail(f"Persisted state under {config.engine.state_key} is corrupt")
        return
    grid = Table(title=f"State `{config.engine.state_key}`", box=box.SIMPLE_HEAVY)
    grid.add_column("Source", style="cyan")
    grid.add_column("Watermark")
    for name, item_id in sorted(saved.watermark.items()):
        grid.add_row(name, item_id)
    console.print(grid)
    if saved.last_updated:
        written = datetime.fromtimestamp(saved.last_updated / 1000, tz=timezone.utc).isoformat()
        console.print(f"Last updated {written}")


@state_app.command("reset")
def state_reset(
    ctx: typer.Context,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
) -> None:
    """Delete persisted watermarks so the next start re-seeds from the store."""

    state = _get_state(ctx)
    if not yes and not typer.confirm("Delete persisted watermarks?"):
        raise typer.Exit(code=1)
    try:
        config = state.config
        store = _open_store(state)
        store.delete_by_key(config.engine.state_key)
        store.close()
    except FeedSyncError as exc:
        _fail(str(exc))
        return
    console.print("Persisted state removed.")


@logs_app.command("list")
def log_list() -> None:
    """List per-source log files."""

    paths = list(available_source_logs())
    if not paths:
        console.print("No source logs yet.")
        return
    for path in paths:
        console.print(f"- {path.stem} ({path})")


@logs_app.command("show")
def log_show(
    source: Annotated[Optional[str], typer.Argument(help="Source id; omit for the main log")] = None,
    lines: Annotated[int, typer.Option("--lines", "-n", min=1, help="Lines to show")] = 50,
) -> None:
    """Print the tail of a log file."""

    path = source_log_path(source) if source else main_log_path()
    content = tail_log(path, lines)
    if not content:
        console.print(f"No log entries in {path}")
        return
    for line in content:
        console.print(line.rstrip("\n"), markup=False, highlight=False)


def cli() -> None:
    app()


__all__ = ["app", "cli"]
