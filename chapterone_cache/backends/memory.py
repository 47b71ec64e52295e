import asyncio
import time
from collections.abc import Callable
from dataclasses import replace
from logging import getLogger
from typing import Any
from typing import Optional

from chapterone_cache.exceptions import CacheError
from chapterone_cache.keys import normalize_user_id
from chapterone_cache.keys import parse_user_id
from chapterone_cache.types import CacheEntry
from chapterone_cache.types import CacheStats

from .base import BaseCacheBackend

logger = getLogger(__name__)

DEFAULT_TTL = 24 * 60 * 60


class MemoryBackend(BaseCacheBackend):
    """In-memory cache backend with lazy TTL expiration.

    Expired entries are dropped when they are read. A periodic sweep can be
    started with :meth:`start_cleanup` but is not required for correctness.
    """

    def __init__(
        self,
        ttl: Optional[float] = DEFAULT_TTL,
        cleanup_interval: float = 60 * 60,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if ttl is not None and ttl < 0:
            raise CacheError("ttl must not be negative")
        self.cache: dict[str, CacheEntry] = {}
        self.lock = asyncio.Lock()
        self.ttl = ttl
        self.cleanup_interval = cleanup_interval
        self.clock = clock
        self._stats = CacheStats()
        self._cleanup_task: asyncio.Task | None = None

    async def get(self, key: str, record_stats: bool = True) -> Optional[Any]:
        started = time.perf_counter()
        async with self.lock:
            entry = self.cache.get(key)
            if entry is not None and entry.is_expired(self.clock()):
                self.cache.pop(key, None)
                logger.debug("Dropped expired entry: %s", key)
                entry = None
        if record_stats:
            self._record(entry is not None, (time.perf_counter() - started) * 1000)
        if entry is None:
            return None
        return entry.value

    async def set(
        self,
        key: str,
        value: Any,
        ttl: Optional[float] = None,
        user_id: Optional[str] = None,
    ) -> None:
        if ttl is not None and ttl < 0:
            raise CacheError("ttl must not be negative")
        owner = normalize_user_id(user_id)
        async with self.lock:
            self.cache[key] = CacheEntry(
                key=key,
                value=value,
                cached_at=self.clock(),
                ttl=ttl if ttl is not None else self.ttl,
                user_id=owner if owner is not None else parse_user_id(key),
            )

    def now(self) -> float:
        return self.clock()

    async def delete(self, key: str) -> None:
        async with self.lock:
            self.cache.pop(key, None)

    async def clear(self) -> int:
        async with self.lock:
            cleared = len(self.cache)
            self.cache.clear()
        logger.info("Cleared all cache entries (%d)", cleared)
        return cleared

    async def clear_user(self, user_id: str) -> int:
        normalized = normalize_user_id(user_id)
        if normalized is None:
            return 0
        async with self.lock:
            user_keys = [k for k, v in self.cache.items() if v.user_id == normalized]
            for key in user_keys:
                self.cache.pop(key, None)
        logger.info("Cleared %d cache entries for user: %s", len(user_keys), normalized)
        return len(user_keys)

    def stats(self) -> CacheStats:
        return replace(self._stats)

    def _record(self, hit: bool, response_time_ms: float) -> None:
        stats = self._stats
        if hit:
            stats.hits += 1
        else:
            stats.misses += 1
        total = stats.total_queries
        stats.average_response_time_ms = (
            stats.average_response_time_ms * (total - 1) + response_time_ms
        ) / total

    async def cleanup(self) -> int:
        async with self.lock:
            now = self.clock()
            expired_keys = [k for k, v in self.cache.items() if v.is_expired(now)]
            for key in expired_keys:
                self.cache.pop(key, None)
            self._stats.last_cleanup = now
        logger.debug("Cleaned up %d expired entries", len(expired_keys))
        return len(expired_keys)

    async def _cleanup_loop(self) -> None:
        while True:
            await asyncio.sleep(self.cleanup_interval)
            await self.cleanup()

    def start_cleanup(self) -> None:
        """Start the periodic sweep task on the running event loop."""
        if self._cleanup_task is not None and not self._cleanup_task.done():
            return
        self._cleanup_task = asyncio.get_running_loop().create_task(
            self._cleanup_loop()
        )

    def stop_cleanup(self) -> None:
        if self._cleanup_task is not None:
            self._cleanup_task.cancel()
            self._cleanup_task = None

    async def get_all_keys(self) -> list[str]:
        async with self.lock:
            return list(self.cache.keys())

    async def get_cache_data(self) -> dict[str, CacheEntry]:
        """Return a snapshot of every stored entry, expired ones included."""
        async with self.lock:
            return dict(self.cache)
