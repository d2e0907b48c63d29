"""Service logging: rich console output plus daily log files.

Server records go to ``<log_dir>/chartchat_YYYY_MM_DD.log``. Records from the
``chartchat.client`` logger (browser errors and console lines forwarded over
HTTP) are also written to ``client_YYYY_MM_DD.log`` so browser noise can be
read on its own. All handlers run behind a queue listener so request
handlers never block on file I/O.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import date, datetime
from logging.handlers import QueueHandler, QueueListener
from pathlib import Path
from queue import SimpleQueue
from threading import RLock
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.traceback import install as install_rich_traceback

from .context import ContextFilter, log_context
from .timing import timeit

__all__ = [
    "CLIENT_LOGGER_NAME",
    "init_logging",
    "get_logger",
    "shutdown_logging",
    "log_context",
    "timeit",
]

CLIENT_LOGGER_NAME = "chartchat.client"

# Third-party loggers that are chatty at INFO.
QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access")

FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(context)s%(message)s"


@dataclass(frozen=True)
class LoggingConfig:
    app_name: str = "chartchat"
    level: str = "INFO"
    log_dir: Optional[Path] = None
    console: bool = True
    client_file: bool = True

    @classmethod
    def from_env(cls) -> "LoggingConfig":
        log_dir = os.getenv("LOG_DIR", "logs")
        return cls(
            level=os.getenv("LOG_LEVEL", "INFO"),
            log_dir=Path(log_dir) if log_dir else None,
        )


_lock = RLock()
_config: LoggingConfig | None = None
_listener: QueueListener | None = None
_context_filter = ContextFilter()


def _parse_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    return getattr(logging, str(level).upper(), logging.INFO)


class DailyFileHandler(logging.FileHandler):
    """Append to ``<prefix>_<date>.log`` and roll over when the date changes."""

    def __init__(self, directory: Path, prefix: str, *, encoding: str = "utf-8") -> None:
        self.directory = directory
        self.prefix = prefix
        self.directory.mkdir(parents=True, exist_ok=True)
        self._current_date: date = datetime.now().date()
        super().__init__(self._path_for(self._current_date), mode="a", encoding=encoding)

    def _path_for(self, day: date) -> Path:
        return self.directory / f"{self.prefix}_{day.strftime('%Y_%m_%d')}.log"

    def emit(self, record: logging.LogRecord) -> None:
        record_date = datetime.fromtimestamp(record.created).date()
        if record_date != self._current_date:
            self._current_date = record_date
            self.close()
            self.baseFilename = os.fspath(self._path_for(record_date))
        super().emit(record)


class _ClientOnly(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        return record.name == CLIENT_LOGGER_NAME or record.name.startswith(CLIENT_LOGGER_NAME + ".")


def _file_handler(directory: Path, prefix: str, level: int) -> DailyFileHandler:
    handler = DailyFileHandler(directory, prefix)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    return handler


def _build_handlers(cfg: LoggingConfig, level: int) -> list[logging.Handler]:
    handlers: list[logging.Handler] = []

    if cfg.console:
        install_rich_traceback(show_locals=False)
        console = RichHandler(
            console=Console(stderr=True),
            rich_tracebacks=True,
            show_path=False,
            markup=False,
            log_time_format="%Y-%m-%d %H:%M:%S",
        )
        console.setLevel(level)
        console.setFormatter(logging.Formatter("%(context)s%(message)s"))
        handlers.append(console)

    if cfg.log_dir:
        handlers.append(_file_handler(cfg.log_dir, cfg.app_name, level))
        if cfg.client_file:
            client = _file_handler(cfg.log_dir, "client", logging.DEBUG)
            client.addFilter(_ClientOnly())
            handlers.append(client)

    return handlers


def init_logging(
    *,
    level: str | int | None = None,
    log_dir: Path | str | None = None,
    console: bool | None = None,
) -> None:
    """Configure the root logger once; a call with different options reconfigures it."""

    base = LoggingConfig.from_env()
    cfg = LoggingConfig(
        app_name=base.app_name,
        level=str(level) if level is not None else base.level,
        log_dir=Path(log_dir) if log_dir is not None else base.log_dir,
        console=base.console if console is None else console,
        client_file=base.client_file,
    )

    with _lock:
        global _config, _listener
        if _config == cfg:
            return
        _teardown_locked()

        numeric_level = _parse_level(cfg.level)
        root = logging.getLogger()
        root.setLevel(logging.DEBUG)
        for name in QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

        handlers = _build_handlers(cfg, numeric_level)
        if handlers:
            # The context filter runs on the producer side, where the contextvar is set.
            queue_handler = QueueHandler(SimpleQueue())
            queue_handler.addFilter(_context_filter)
            root.addHandler(queue_handler)
            _listener = QueueListener(queue_handler.queue, *handlers, respect_handler_level=True)
            _listener.start()

        _config = cfg


def _teardown_locked() -> None:
    global _listener, _config
    if _listener is not None:
        _listener.stop()
        for handler in _listener.handlers:
            handler.close()
    _listener = None
    _config = None
    root = logging.getLogger()
    for handler in list(root.handlers):
        if isinstance(handler, QueueHandler):
            root.removeHandler(handler)


def shutdown_logging() -> None:
    """Flush and stop the queue listener."""

    with _lock:
        _teardown_locked()


def get_logger(name: str | None = None) -> logging.Logger:
    with _lock:
        if _config is None:
            init_logging()
        return logging.getLogger(name or _config.app_name)
