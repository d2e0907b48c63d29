"""Per-turn log context carried in a contextvar.

Values bound with :meth:`LogContext.scoped` (turn id, chart type) are
prefixed to every record emitted inside the block, including records from
awaited coroutines, since each asyncio task copies the context it starts in.
"""
from __future__ import annotations

import contextvars
import logging
from contextlib import contextmanager
from typing import Dict, Iterator, Mapping

_current: contextvars.ContextVar[Mapping[str, object]] = contextvars.ContextVar(
    "chartchat_log_context", default={}
)


class LogContext:
    @contextmanager
    def scoped(self, **values: object) -> Iterator[None]:
        """Add ``values`` (None entries skipped) until the block exits."""

        merged = dict(_current.get())
        merged.update((key, value) for key, value in values.items() if value is not None)
        token = _current.set(merged)
        try:
            yield
        finally:
            _current.reset(token)

    def as_dict(self) -> Dict[str, object]:
        return dict(_current.get())


class ContextFilter(logging.Filter):
    """Render the bound values as a ``key=value`` prefix on ``record.context``."""

    def filter(self, record: logging.LogRecord) -> bool:
        values = _current.get()
        record.context = "".join(f"{key}={value} " for key, value in values.items())
        return True


log_context = LogContext()
