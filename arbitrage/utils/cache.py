"""Single-slot TTL cache for the product snapshot, with in-flight coalescing.

Usage:
    cache = SnapshotCache(ttl_seconds=1800)
    snapshot = await cache.get_or_build(lambda: assembler.assemble(raw))

Only one product is active per page context, so the slot is keyed
implicitly. Concurrent callers during a build all await the same task.
"""
import asyncio
import time
from typing import Any, Awaitable, Callable, Optional

from arbitrage.config import get_settings
from arbitrage.utils.logger import get_logger

_MISS = object()


class SnapshotCache:
    """One cached value plus its creation timestamp and one pending build."""

    def __init__(
        self,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.time,
        logger=None
    ):
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else get_settings().snapshot_cache_seconds
        self._clock = clock
        self._value: Any = None
        self._created_at: Optional[float] = None
        self._pending: Optional[asyncio.Task] = None
        self._generation = 0
        self.build_count = 0
        self.log = get_logger("snapshot_cache", logger)

    def _get_fresh(self):
        """Return cached value if still valid, else _MISS sentinel."""
        if self._created_at is None or self._value is None:
            return _MISS
        if self._clock() - self._created_at >= self.ttl_seconds:
            return _MISS
        return self._value

    def peek(self) -> Any:
        value = self._get_fresh()
        return None if value is _MISS else value

    def clear(self) -> None:
        """Drop the cached value and detach any in-flight build."""
        self._value = None
        self._created_at = None
        self._pending = None
        self._generation += 1
        self.log.info("Snapshot cache cleared")

    async def get_or_build(self, builder: Callable[[], Awaitable[Any]]) -> Any:
        """
        Return the cached value, or await a build shared by every concurrent caller.

        None results and exceptions are not cached; the next call retries.
        """
        cached = self._get_fresh()
        if cached is not _MISS:
            self.log.debug("Snapshot cache hit")
            return cached

        if self._pending is not None and not self._pending.done():
            self.log.debug("Snapshot build in flight, awaiting shared result")
            return await asyncio.shield(self._pending)

        task = asyncio.ensure_future(self._build(builder, self._generation))
        self._pending = task
        return await asyncio.shield(task)

    async def _build(self, builder: Callable[[], Awaitable[Any]], generation: int) -> Any:
        self.build_count += 1
        try:
            value = await builder()
        finally:
            if generation == self._generation:
                self._pending = None

        # a clear() during the build makes this result stale
        if generation != self._generation:
            return value

        if value is not None:
            self._value = value
            self._created_at = self._clock()
        return value
