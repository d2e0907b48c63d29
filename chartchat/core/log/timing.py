"""Duration logging for upstream calls and chart updates."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from time import perf_counter
from typing import Iterator, Optional


@dataclass
class _Timer:
    label: str
    logger: logging.Logger
    level: int
    unit: str
    expected_total: Optional[int]
    warn_after: Optional[float] = None
    count: int = 0
    start: float = field(default_factory=perf_counter)
    elapsed: Optional[float] = None

    def add(self, amount: int = 1) -> None:
        self.count += amount

    def set_total(self, total: int) -> None:
        self.expected_total = total

    @property
    def elapsed_ms(self) -> int:
        seconds = self.elapsed if self.elapsed is not None else perf_counter() - self.start
        return int(seconds * 1000)

    def _suffix(self) -> str:
        total = self.expected_total if self.expected_total is not None else self.count
        return f" ({total:,} {self.unit})" if total else ""

    def finish(self, success: bool = True) -> None:
        self.elapsed = perf_counter() - self.start
        if not success:
            self.logger.error(f"{self.label} failed after {self.elapsed:.2f}s{self._suffix()}")
            return

        level = self.level
        message = f"{self.label} completed in {self.elapsed:.2f}s{self._suffix()}"
        if self.warn_after is not None and self.elapsed > self.warn_after:
            level = max(level, logging.WARNING)
            message += f", slower than {self.warn_after:g}s"
        self.logger.log(level, message)


@contextmanager
def timeit(
    label: str,
    *,
    logger: Optional[logging.Logger] = None,
    level: int = logging.INFO,
    unit: str = "items",
    total: Optional[int] = None,
    warn_after: Optional[float] = None,
) -> Iterator[_Timer]:
    """Log how long the wrapped block took.

    Args:
        label: Description of the operation being timed
        logger: Logger instance to use (defaults to "chartchat.timer")
        level: Logging level for the completion message
        unit: Unit reported next to the counted total (e.g. "fields", "tables")
        total: Expected total count
        warn_after: Seconds after which completion is logged as a warning
    """
    timer = _Timer(
        label=label,
        logger=logger or logging.getLogger("chartchat.timer"),
        level=level,
        unit=unit,
        expected_total=total,
        warn_after=warn_after,
    )
    try:
        yield timer
    except Exception:
        timer.finish(success=False)
        raise
    else:
        timer.finish(success=True)
