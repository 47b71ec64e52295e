"""Cache-aware book search."""

import time
from collections.abc import Awaitable
from collections.abc import Callable
from logging import getLogger
from typing import Any
from typing import Optional

from .backends import BaseCacheBackend
from .backends import MemoryBackend
from .config import CacheConfig
from .dedup import RequestDeduplicator
from .keys import build_metadata_key
from .keys import build_preferences_key
from .keys import build_search_key
from .keys import normalize_user_id
from .models import Book
from .models import UserPreferences
from .types import CachedSearchResult
from .types import CacheStats
from .types import SearchCacheKey

SearchFunction = Callable[[], Awaitable[list[Book]]]

logger = getLogger(__name__)


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000


class CachedBookSearch:
    """Check the cache, fetch on a miss with deduplication, store the result.

    The backend and the deduplicator are injected so their lifetime is owned
    by the caller. Omitted collaborators are created for this instance only.
    """

    def __init__(
        self,
        backend: Optional[BaseCacheBackend] = None,
        deduplicator: Optional[RequestDeduplicator] = None,
        config: Optional[CacheConfig] = None,
    ) -> None:
        self.config = config or CacheConfig()
        self.backend = backend or MemoryBackend(
            ttl=self.config.search_ttl,
            cleanup_interval=self.config.cleanup_interval,
        )
        self.deduplicator = deduplicator or RequestDeduplicator()

    async def get_cached_search(self, params: SearchCacheKey) -> Optional[list[Book]]:
        key = build_search_key(params)
        books = await self.backend.get(key)
        if books is None:
            logger.debug("Cache miss: %s", key)
            return None
        logger.debug("Cache hit: %s (%d books)", key, len(books))
        return books

    async def cache_search(self, params: SearchCacheKey, books: list[Book]) -> None:
        key = build_search_key(params)
        await self.backend.set(key, books, ttl=self.config.search_ttl)
        logger.info("Cached search results: %s (%d books)", key, len(books))

        user_id = normalize_user_id(params.user_id)
        if user_id is not None:
            preferences = UserPreferences(
                last_search_type=params.search_type,
                include_external_preference=params.include_external,
            )
            await self.backend.set(
                build_preferences_key(user_id),
                preferences,
                ttl=self.config.preferences_ttl,
            )

    async def search_with_cache(
        self, params: SearchCacheKey, fetch: SearchFunction
    ) -> CachedSearchResult:
        """Return cached books for ``params`` or fetch, store and return them.

        Concurrent misses for the same key share a single ``fetch`` call. A
        failed fetch is re-raised to every sharing caller and nothing is
        cached, so the next call fetches again.

        Args:
            params: Search parameters, including the user id when authenticated
            fetch: Zero-argument coroutine function performing the real search

        Returns:
            The books plus whether they came from the cache, the elapsed
            time in milliseconds and the current hit rate
        """
        started = time.perf_counter()

        cached = await self.get_cached_search(params)
        if cached is not None:
            return CachedSearchResult(
                books=cached,
                cached=True,
                response_time_ms=_elapsed_ms(started),
                hit_rate=self.backend.stats().hit_rate,
            )

        generation = self.deduplicator.generation

        async def compute() -> list[Book]:
            books = await fetch()
            if self.deduplicator.generation != generation:
                logger.info(
                    "Cache cleared during fetch, not storing: %r", params.query
                )
            else:
                await self.cache_search(params, books)
            return books

        try:
            books = await self.deduplicator.dedupe(build_search_key(params), compute)
        except Exception:
            logger.warning("Search failed for query: %r", params.query)
            raise

        response_time_ms = _elapsed_ms(started)
        logger.info(
            "Search completed in %.1fms (%d books)", response_time_ms, len(books)
        )
        return CachedSearchResult(
            books=books,
            cached=False,
            response_time_ms=response_time_ms,
            hit_rate=self.backend.stats().hit_rate,
        )

    async def get_user_preferences(self, user_id: str) -> Optional[UserPreferences]:
        if normalize_user_id(user_id) is None:
            return None
        return await self.backend.get(
            build_preferences_key(user_id), record_stats=False
        )

    async def cache_book_metadata(
        self, book_id: str, metadata: Any, user_id: Optional[str] = None
    ) -> None:
        """Cache metadata under the book id, owned by ``user_id`` when given."""
        await self.backend.set(
            build_metadata_key(book_id),
            metadata,
            ttl=self.config.metadata_ttl,
            user_id=user_id,
        )

    async def get_cached_book_metadata(self, book_id: str) -> Optional[Any]:
        return await self.backend.get(build_metadata_key(book_id), record_stats=False)

    async def clear_cache(self) -> int:
        self.deduplicator.clear()
        return await self.backend.clear()

    async def clear_user_cache(self, user_id: Optional[str]) -> int:
        normalized = normalize_user_id(user_id)
        if normalized is None:
            logger.warning("No user id given, cannot clear user cache")
            return 0
        self.deduplicator.clear()
        return await self.backend.clear_user(normalized)

    async def logout(self, user_id: Optional[str]) -> int:
        """Remove everything cached for a user who is signing out."""
        logger.info("User logged out, clearing user-specific cache")
        return await self.clear_user_cache(user_id)

    def invalidate_pending(self) -> int:
        """Forget in-flight reads after a mutation such as save/unsave."""
        return self.deduplicator.clear()

    def get_cache_stats(self) -> CacheStats:
        return self.backend.stats()
