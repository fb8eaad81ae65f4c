"""In-process TTL cache with single-flight population.

One instance is created by the container at startup and shared for the life
of the process. All access happens on the event loop, so no thread locking is
needed; concurrent coroutines asking for the same missing key share a single
in-flight population task and receive its result (or its exception).

Keys come straight from request coordinates, so the entry table is bounded:
expired entries are swept whenever a value is stored, and the least recently
used entry is evicted once ``max_entries`` is reached.
"""
import asyncio
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Hashable, Optional

from app.metrics import (
    CACHE_REQUESTS_TOTAL,
    CACHE_POPULATE_DURATION_SECONDS,
    CACHE_INVALIDATIONS_TOTAL,
    CACHE_EVICTIONS_TOTAL,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_ENTRIES = 1000


@dataclass
class CacheEntry:
    value: Any
    expires_at: float


class TTLCache:
    """Async LRU cache with per-entry expiry, keyed by any hashable value."""

    def __init__(
        self,
        name: str = "default",
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the cache.

        Args:
            name: Label used in metrics and logs
            max_entries: Upper bound on stored entries
            clock: Monotonic time source in seconds (injectable for tests)
        """
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")

        self.name = name
        self.max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[Hashable, CacheEntry] = OrderedDict()
        self._inflight: dict[Hashable, asyncio.Task] = {}

    async def get(
        self,
        key: Hashable,
        ttl: float,
        populate: Callable[[], Awaitable[Any]],
    ) -> Any:
        """Return the cached value for key, populating it at most once at a time.

        Args:
            key: Cache key
            ttl: Time-to-live in seconds for a freshly populated value
            populate: Coroutine factory computing a fresh value

        Returns:
            The cached or freshly computed value

        Raises:
            Whatever ``populate`` raises. Failed populations are not cached.
        """
        entry = self._fresh_entry(key)
        if entry is not None:
            CACHE_REQUESTS_TOTAL.labels(cache=self.name, result="hit").inc()
            self._entries.move_to_end(key)
            return entry.value

        task = self._inflight.get(key)
        if task is not None:
            CACHE_REQUESTS_TOTAL.labels(cache=self.name, result="shared").inc()
            logger.debug(f"[TTLCache:{self.name}] Waiting on in-flight population for {key!r}")
        else:
            CACHE_REQUESTS_TOTAL.labels(cache=self.name, result="miss").inc()
            task = asyncio.ensure_future(self._populate(key, ttl, populate))
            self._inflight[key] = task
            task.add_done_callback(lambda t, k=key: self._forget(k, t))

        # shield: one caller being cancelled must not cancel the shared population
        return await asyncio.shield(task)

    def delete(self, key: Hashable) -> None:
        """Drop a cached value.

        An in-flight population still answers its current waiters, but its
        result is not stored and the next caller starts a fresh one.
        """
        self._inflight.pop(key, None)
        if self._entries.pop(key, None) is not None:
            CACHE_INVALIDATIONS_TOTAL.labels(cache=self.name).inc()
            logger.debug(f"[TTLCache:{self.name}] Invalidated {key!r}")

    def __len__(self) -> int:
        return len(self._entries)

    def _fresh_entry(self, key: Hashable) -> Optional[CacheEntry]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at <= self._clock():
            del self._entries[key]
            return None
        return entry

    def _store(self, key: Hashable, value: Any, ttl: float) -> None:
        now = self._clock()
        expired = [k for k, e in self._entries.items() if e.expires_at <= now]
        for k in expired:
            del self._entries[k]

        self._entries[key] = CacheEntry(value=value, expires_at=now + ttl)
        self._entries.move_to_end(key)

        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            CACHE_EVICTIONS_TOTAL.labels(cache=self.name).inc()
            logger.debug(f"[TTLCache:{self.name}] Evicted {evicted!r}")

    async def _populate(
        self,
        key: Hashable,
        ttl: float,
        populate: Callable[[], Awaitable[Any]],
    ) -> Any:
        start_time = time.perf_counter()
        try:
            value = await populate()
        finally:
            CACHE_POPULATE_DURATION_SECONDS.labels(cache=self.name).observe(
                time.perf_counter() - start_time
            )

        if self._inflight.get(key) is not asyncio.current_task():
            logger.debug(f"[TTLCache:{self.name}] Dropping result for {key!r}, invalidated mid-flight")
            return value

        self._store(key, value, ttl)
        logger.debug(f"[TTLCache:{self.name}] Populated {key!r} (ttl={ttl}s)")
        return value

    def _forget(self, key: Hashable, task: asyncio.Task) -> None:
        # Waiters may all have been cancelled; mark the failure as retrieved
        if not task.cancelled() and task.exception() is not None:
            logger.debug(f"[TTLCache:{self.name}] Population of {key!r} failed: {task.exception()}")
        if self._inflight.get(key) is task:
            del self._inflight[key]
