"""Time-boxed cache in front of the dataset schema fetch."""
from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable, Dict, Optional, Tuple

from chartchat.core.logger import get_logger, timeit
from chartchat.errors import SchemaUnavailable

from .schema import SchemaSnapshot

logger = get_logger(__name__)

SchemaFetcher = Callable[[], Awaitable[SchemaSnapshot]]

DEFAULT_TTL_SECONDS = 5 * 60


class SchemaProvider:
    """Serve the cached snapshot while it is fresh, otherwise fetch a new one.

    The cache is a single ``(snapshot, fetched_at)`` slot that is replaced in
    one assignment, so readers see either the old or the new snapshot. A
    failed refresh keeps serving the previous snapshot until it is older than
    ``ttl + grace``.
    """

    def __init__(
        self,
        fetcher: SchemaFetcher,
        *,
        ttl: float = DEFAULT_TTL_SECONDS,
        grace: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._fetcher = fetcher
        self.ttl = ttl
        self.grace = grace
        self._clock = clock
        self._slot: Optional[Tuple[SchemaSnapshot, float]] = None
        self._refresh_lock = asyncio.Lock()

    def _age(self, fetched_at: float) -> float:
        return self._clock() - fetched_at

    def _fresh(self) -> Optional[SchemaSnapshot]:
        slot = self._slot
        if slot is None:
            return None
        snapshot, fetched_at = slot
        return snapshot if self._age(fetched_at) < self.ttl else None

    async def get_schema(self, force_refresh: bool = False) -> SchemaSnapshot:
        """Return the dataset schema.

        Raises:
            SchemaUnavailable: the fetch failed and no usable snapshot is cached.
        """
        if not force_refresh:
            cached = self._fresh()
            if cached is not None:
                return cached

        async with self._refresh_lock:
            # Another caller may have refreshed while we waited for the lock.
            if not force_refresh:
                cached = self._fresh()
                if cached is not None:
                    return cached
            return await self._refresh()

    async def _refresh(self) -> SchemaSnapshot:
        try:
            with timeit("Dataset schema fetch", logger=logger, unit="tables") as timer:
                snapshot = await self._fetcher()
                timer.set_total(len(snapshot.tables))
        except Exception as exc:  # noqa: BLE001 - any fetch failure degrades to the cache
            return self._fallback(exc)

        self._slot = (snapshot, self._clock())
        return snapshot

    def _fallback(self, exc: Exception) -> SchemaSnapshot:
        slot = self._slot
        if slot is not None:
            snapshot, fetched_at = slot
            age = self._age(fetched_at)
            if age < self.ttl + self.grace:
                logger.warning(
                    "Schema refresh failed, serving cached snapshot (age %.0fs): %s",
                    age,
                    exc,
                )
                return snapshot
        logger.error(f"Schema refresh failed with no usable cache: {str(exc)}")
        detail = getattr(exc, "detail", None) or str(exc)
        raise SchemaUnavailable("Failed to retrieve dataset metadata", detail=detail) from exc

    def invalidate(self) -> None:
        self._slot = None

    def is_stale(self) -> bool:
        slot = self._slot
        if slot is None:
            return False
        return self._age(slot[1]) >= self.ttl

    def cache_info(self) -> Dict[str, object]:
        """Describe the cache slot for status endpoints."""

        slot = self._slot
        if slot is None:
            return {
                "status": "no_cache",
                "message": "No metadata cached yet",
                "cacheInfo": {"cacheAgeSeconds": None, "ttlSeconds": self.ttl},
            }
        snapshot, fetched_at = slot
        age = self._age(fetched_at)
        return {
            "status": "cached",
            "cacheInfo": {
                "lastUpdated": snapshot.last_updated,
                "cacheAgeSeconds": round(age, 3),
                "isStale": age >= self.ttl,
                "ttlSeconds": self.ttl,
            },
        }
