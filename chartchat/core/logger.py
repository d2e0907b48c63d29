"""Stable import path for the shared logging utilities."""
from __future__ import annotations

from .log import (
    CLIENT_LOGGER_NAME,
    get_logger,
    init_logging,
    log_context,
    shutdown_logging,
    timeit,
)

__all__ = [
    "CLIENT_LOGGER_NAME",
    "get_logger",
    "init_logging",
    "shutdown_logging",
    "log_context",
    "timeit",
]
