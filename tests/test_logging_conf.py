from __future__ import annotations

import logging
from pathlib import Path

import pytest

from feedsync.logging_conf import available_source_logs, source_log_path, source_logger, tail_log


def test_source_logger_writes_its_own_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FEEDSYNC_HOME", str(tmp_path))
    log = source_logger("carol")
    source_logger("carol")

    assert len(logging.getLogger("feedsync.source.carol").handlers) == 1
    log.info("carol_synced", written=2)

    path = source_log_path("carol")
    assert path == tmp_path.resolve() / "logs" / "sources" / "carol.log"
    assert "carol_synced" in "".join(tail_log(path, 5))
    assert list(available_source_logs()) == [path]


def test_source_logger_follows_log_directory(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FEEDSYNC_HOME", str(tmp_path / "first"))
    source_logger("dave")
    monkeypatch.setenv("FEEDSYNC_HOME", str(tmp_path / "second"))
    source_logger("dave")

    handlers = logging.getLogger("feedsync.source.dave").handlers
    assert [handler.baseFilename for handler in handlers] == [str(source_log_path("dave"))]
    assert "second" in handlers[0].baseFilename
