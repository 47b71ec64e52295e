import time
from abc import ABC
from abc import abstractmethod
from typing import Any
from typing import Optional

from chapterone_cache.types import CacheEntry
from chapterone_cache.types import CacheStats


class BaseCacheBackend(ABC):
    """Base class for all cache backends."""

    @abstractmethod
    async def get(self, key: str, record_stats: bool = True) -> Optional[Any]:
        """Retrieve a live cached value, None on a miss.

        Lookups made with ``record_stats=False`` are left out of the hit rate.
        """

    @abstractmethod
    async def set(
        self,
        key: str,
        value: Any,
        ttl: Optional[float] = None,
        user_id: Optional[str] = None,
    ) -> None:
        """Store a value in the cache, replacing any previous entry.

        ``user_id`` names the owner; when omitted it is read from the key.
        """

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a value from the cache."""

    @abstractmethod
    async def clear(self) -> int:
        """Clear all cached values."""

    @abstractmethod
    async def clear_user(self, user_id: str) -> int:
        """Clear the values owned by a user."""

    @abstractmethod
    def stats(self) -> CacheStats:
        """Return cumulative hit/miss counters."""

    @abstractmethod
    async def get_cache_data(self) -> dict[str, CacheEntry]:
        """Return every stored entry, expired ones included."""

    def now(self) -> float:
        """Current time on the clock entries are stamped with."""
        return time.time()
