"""Logging configuration built around structlog JSON logging."""

from __future__ import annotations

import logging
import logging.config
import os
from pathlib import Path
from threading import Lock
from typing import Iterable

import structlog
from pythonjsonlogger.jsonlogger import JsonFormatter

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

_LOGGING_INITIALISED = False
_SOURCE_HANDLERS: dict[Path, logging.Handler] = {}
_SOURCE_HANDLERS_LOCK = Lock()


def _default_log_dir() -> Path:
    env_root = os.environ.get("FEEDSYNC_HOME")
    if env_root:
        return Path(env_root).expanduser().resolve() / "logs"
    return Path(__file__).resolve().parents[1] / "logs"


def configure_logging(verbose: bool = False) -> structlog.BoundLogger:
    """Configure structlog + stdlib handlers and return application logger."""

    global _LOGGING_INITIALISED
    log_dir = _default_log_dir()
    error_log = log_dir / "error.log"
    main_log = log_dir / "feedsync.log"
    sources_dir = log_dir / "sources"
    sources_dir.mkdir(parents=True, exist_ok=True)
    error_log.touch(exist_ok=True)
    main_log.touch(exist_ok=True)

    if not _LOGGING_INITIALISED:
        level = "DEBUG" if verbose else "INFO"
        logging.config.dictConfig(
            {
                "version": 1,
                "disable_existing_loggers": False,
                "formatters": {
                    "plain": {
                        "()": JsonFormatter,
                        "fmt": LOG_FORMAT,
                    }
                },
                "handlers": {
                    "console": {
                        "class": "logging.StreamHandler",
                        "level": level,
                        "formatter": "plain",
                    },
                    "main_file": {
                        "class": "logging.FileHandler",
                        "level": "INFO",
                        "filename": str(main_log),
                        "formatter": "plain",
                    },
                    "error_file": {
                        "class": "logging.FileHandler",
                        "level": "ERROR",
                        "filename": str(error_log),
                        "formatter": "plain",
                    },
                },
                "loggers": {
                    "feedsync": {
                        "handlers": ["console", "main_file", "error_file"],
                        "level": level,
                        "propagate": False,
                    },
                },
            }
        )

        structlog.configure(
            processors=[
                structlog.contextvars.merge_contextvars,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.stdlib.add_log_level,
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ],
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )
        _LOGGING_INITIALISED = True
    return structlog.get_logger("feedsync")


def _source_handler(path: Path) -> logging.Handler:
    with _SOURCE_HANDLERS_LOCK:
        handler = _SOURCE_HANDLERS.get(path)
        if handler is None:
            path.parent.mkdir(parents=True, exist_ok=True)
            handler = logging.FileHandler(path, encoding="utf-8")
            handler.setFormatter(JsonFormatter(LOG_FORMAT))
            handler.setLevel(logging.INFO)
            _SOURCE_HANDLERS[path] = handler
        return handler


def source_logger(source_name: str, verbose: bool = False) -> structlog.BoundLogger:
    """Return a logger bound to one tracked source.

    Events go to the main handlers and to ``logs/sources/<source>.log``.
    When the log directory moves, the source's previous file handler is
    detached.
    """

    configure_logging(verbose)
    handler = _source_handler(source_log_path(source_name))
    py_logger = logging.getLogger(f"feedsync.source.{source_name}")
    for stale in [h for h in py_logger.handlers if h is not handler]:
        py_logger.removeHandler(stale)
    if handler not in py_logger.handlers:
        py_logger.addHandler(handler)
    return structlog.get_logger(py_logger.name).bind(source=source_name)


def tail_log(path: Path, line_count: int = 100) -> list[str]:
    """Return the last N lines from a log file."""

    if not path.exists():
        return []
    with path.open("r", encoding="utf-8", errors="ignore") as stream:
        lines = stream.readlines()
    return lines[-line_count:]


def main_log_path() -> Path:
    return _default_log_dir() / "feedsync.log"


def source_log_path(source_name: str) -> Path:
    return _default_log_dir() / "sources" / f"{source_name}.log"


def available_source_logs() -> Iterable[Path]:
    """Yield available source log file paths."""

    sources_dir = _default_log_dir() / "sources"
    if not sources_dir.exists():
        return []
    return sorted(p for p in sources_dir.glob("*.log"))


__all__ = [
    "available_source_logs",
    "configure_logging",
    "main_log_path",
    "source_log_path",
    "source_logger",
    "tail_log",
]
