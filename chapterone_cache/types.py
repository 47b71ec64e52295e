"""Type definitions and type aliases for chapterone_cache."""

from dataclasses import dataclass
from typing import Any

# Cache key separator - field values are percent-encoded, so "|" never appears inside a field
CACHE_KEY_SEPARATOR = "|||"


@dataclass(frozen=True)
class SearchCacheKey:
    """Search parameters that identify one cache slot.

    Args:
        query: Raw query text as typed by the user
        search_type: Search mode (e.g. "all", "title", "author")
        include_external: Whether external sources are merged into the results
        user_id: Authenticated user id, None for anonymous searches
    """

    query: str
    search_type: str = "all"
    include_external: bool = False
    user_id: str | None = None


@dataclass
class CacheEntry:
    """Cache entry with the time it was stored.

    Args:
        key: The cache key this entry lives under
        value: The cached payload (opaque to the store)
        cached_at: Epoch timestamp (seconds) when the entry was stored
        ttl: Freshness window in seconds (None = never expires)
        user_id: User partition encoded in the key, None for anonymous entries
    """

    key: str
    value: Any
    cached_at: float
    ttl: float | None = None
    user_id: str | None = None

    def age(self, now: float) -> float:
        return now - self.cached_at

    def is_expired(self, now: float) -> bool:
        if self.ttl is None:
            return False
        return self.age(now) > self.ttl


@dataclass
class CacheStats:
    """Cumulative lookup counters for a cache store."""

    hits: int = 0
    misses: int = 0
    average_response_time_ms: float = 0.0
    last_cleanup: float | None = None

    @property
    def total_queries(self) -> int:
        return self.hits + self.misses

    @property
    def hit_rate(self) -> float:
        """Fraction of lookups served from the cache (0.0 - 1.0)."""
        if self.total_queries == 0:
            return 0.0
        return self.hits / self.total_queries


@dataclass
class CachedSearchResult:
    """Outcome of a cache-aware search."""

    books: list[Any]
    cached: bool
    response_time_ms: float
    hit_rate: float
