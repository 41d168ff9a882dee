"""
In-process TTL cache for expensive read aggregations.

Single-process and non-durable: it is a latency optimization, never a source of
truth. Callers invalidate affected keys on every write that changes an aggregate.
"""
import asyncio
import contextlib
import logging
import threading
import time
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """A cached value and the monotonic time after which it is no longer readable."""

    key: str
    value: Any
    expires_at: float


@dataclass
class CacheStats:
    """Snapshot of cache contents for diagnostics."""

    entry_count: int
    keys: list[str]


class TTLCache:
    """
    Thread-safe key/value cache with per-entry expiry.

    An entry is readable while now <= expires_at. Expired entries are removed
    lazily when read and eagerly by a periodic sweep, whichever happens first.
    One lock guards the map; the sweep releases it between batches so a large
    cache never blocks readers for a full scan.
    """

    def __init__(
        self,
        default_ttl: float = 300.0,
        sweep_interval: float = 120.0,
        sweep_batch_size: int = 500,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._default_ttl = default_ttl
        self._sweep_interval = sweep_interval
        self._sweep_batch_size = max(1, sweep_batch_size)
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._sweeper: asyncio.Task[None] | None = None

    def get(self, key: str) -> Any | None:
        """Return the value for key, or None if absent or expired."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                logger.debug("cache_miss key=%s", key)
                return None
            if now > entry.expires_at:
                del self._entries[key]
                logger.debug("cache_expired key=%s", key)
                return None
            logger.debug("cache_hit key=%s", key)
            return entry.value

    def has(self, key: str) -> bool:
        """Check whether key holds a readable value."""
        return self.get(key) is not None

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """Store value under key, replacing any existing entry."""
        ttl = self._default_ttl if ttl is None else ttl
        entry = CacheEntry(key=key, value=value, expires_at=self._clock() + ttl)
        with self._lock:
            self._entries[key] = entry
        logger.debug("cache_set key=%s ttl=%s", key, ttl)

    def delete(self, key: str) -> bool:
        """Remove key. Returns True if an entry was removed."""
        with self._lock:
            removed = self._entries.pop(key, None) is not None
        if removed:
            logger.debug("cache_delete key=%s", key)
        return removed

    def delete_prefix(self, prefix: str) -> int:
        """Remove every key starting with prefix. Returns the number removed."""
        with self._lock:
            keys = [k for k in self._entries if k.startswith(prefix)]
            for key in keys:
                del self._entries[key]
        if keys:
            logger.debug("cache_delete_prefix prefix=%s removed=%d", prefix, len(keys))
        return len(keys)

    def clear(self) -> None:
        """Remove every entry."""
        with self._lock:
            self._entries.clear()
        logger.info("cache_clear")

    def stats(self) -> CacheStats:
        """Return entry count and keys (expired-but-unswept entries included)."""
        with self._lock:
            keys = list(self._entries)
        return CacheStats(entry_count=len(keys), keys=keys)

    def _sweep_batches(self) -> Iterator[int]:
        """Evict expired entries one batch at a time, yielding the count per batch."""
        with self._lock:
            keys = list(self._entries)
        for start in range(0, len(keys), self._sweep_batch_size):
            batch = keys[start:start + self._sweep_batch_size]
            now = self._clock()
            removed = 0
            with self._lock:
                for key in batch:
                    # Entry may have been replaced since the snapshot; re-check it
                    entry = self._entries.get(key)
                    if entry is not None and now > entry.expires_at:
                        del self._entries[key]
                        removed += 1
            yield removed

    def sweep(self) -> int:
        """Evict all expired entries. Returns the number removed."""
        removed = sum(self._sweep_batches())
        if removed:
            logger.info("cache_sweep removed=%d", removed)
        return removed

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self._sweep_interval)
            removed = 0
            for count in self._sweep_batches():
                removed += count
                # Yield to the event loop between batches
                await asyncio.sleep(0)
            if removed:
                logger.info("cache_sweep removed=%d", removed)

    @property
    def is_sweeping(self) -> bool:
        """Whether the background sweep task is running."""
        return self._sweeper is not None and not self._sweeper.done()

    def start(self) -> None:
        """Start the background sweep on the running event loop."""
        if self.is_sweeping:
            return
        self._sweeper = asyncio.get_running_loop().create_task(self._sweep_loop())
        logger.info("cache_sweeper_started interval=%s", self._sweep_interval)

    async def stop(self) -> None:
        """Cancel the background sweep and wait for it to finish."""
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._sweeper
        self._sweeper = None
        logger.info("cache_sweeper_stopped")
