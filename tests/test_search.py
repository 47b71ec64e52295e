"""Tests for the cache-aware book search."""

import asyncio

import pytest
import pytest_asyncio

from chapterone_cache.backends import MemoryBackend
from chapterone_cache.config import CacheConfig
from chapterone_cache.dedup import RequestDeduplicator
from chapterone_cache.keys import build_search_key
from chapterone_cache.models import Book
from chapterone_cache.models import UserPreferences
from chapterone_cache.search import CachedBookSearch
from chapterone_cache.types import SearchCacheKey

DUNE = Book(id="1", title="Dune", author="Frank Herbert")
EMMA = Book(id="2", title="Emma", author="Jane Austen")


class SlowFetch:
    """Fetch function that takes ``delay`` seconds and counts its calls."""

    def __init__(self, books=None, delay: float = 0.0, error: Exception | None = None):
        self.books = books if books is not None else [DUNE]
        self.delay = delay
        self.error = error
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.books


@pytest_asyncio.fixture
def backend(clock):
    return MemoryBackend(ttl=300, clock=clock)


@pytest_asyncio.fixture
def search(backend):
    return CachedBookSearch(backend=backend, config=CacheConfig(search_ttl=300))


@pytest.fixture
def params():
    return SearchCacheKey(
        query="dune", search_type="title", include_external=True, user_id="42"
    )


@pytest.mark.asyncio
async def test_miss_then_hit(search: CachedBookSearch, params):
    fetch = SlowFetch()

    first = await search.search_with_cache(params, fetch)
    second = await search.search_with_cache(params, fetch)

    assert first.cached is False
    assert first.books == [DUNE]
    assert second.cached is True
    assert second.books is first.books
    assert second.response_time_ms >= 0
    assert second.hit_rate == pytest.approx(0.5)
    assert fetch.calls == 1


@pytest.mark.asyncio
async def test_concurrent_identical_searches_fetch_once(
    search: CachedBookSearch, params
):
    fetch = SlowFetch(delay=0.2)

    first, second = await asyncio.gather(
        search.search_with_cache(params, fetch),
        search.search_with_cache(params, fetch),
    )

    assert fetch.calls == 1
    assert first.books is second.books
    assert first.cached is False
    assert second.cached is False
    assert first.response_time_ms >= 150


@pytest.mark.asyncio
async def test_failed_fetch_is_not_cached(search: CachedBookSearch, params):
    failing = SlowFetch(error=RuntimeError("backend down"))

    with pytest.raises(RuntimeError, match="backend down"):
        await search.search_with_cache(params, failing)

    assert await search.get_cached_search(params) is None

    working = SlowFetch()
    result = await search.search_with_cache(params, working)

    assert working.calls == 1
    assert result.cached is False
    assert result.books == [DUNE]


@pytest.mark.asyncio
async def test_failed_fetch_reaches_every_sharer(search: CachedBookSearch, params):
    failing = SlowFetch(delay=0.05, error=RuntimeError("backend down"))

    results = await asyncio.gather(
        search.search_with_cache(params, failing),
        search.search_with_cache(params, failing),
        return_exceptions=True,
    )

    assert failing.calls == 1
    assert all(isinstance(r, RuntimeError) for r in results)
    assert results[0] is results[1]


@pytest.mark.asyncio
async def test_expired_entry_is_fetched_again(search: CachedBookSearch, params, clock):
    fetch = SlowFetch()

    await search.search_with_cache(params, fetch)
    clock.advance(301)
    result = await search.search_with_cache(params, fetch)

    assert result.cached is False
    assert fetch.calls == 2


@pytest.mark.asyncio
async def test_users_do_not_share_entries(search: CachedBookSearch, params):
    fetch = SlowFetch()
    other_user = SearchCacheKey(
        query=params.query,
        search_type=params.search_type,
        include_external=params.include_external,
        user_id="7",
    )

    await search.search_with_cache(params, fetch)
    result = await search.search_with_cache(other_user, fetch)

    assert result.cached is False
    assert fetch.calls == 2


@pytest.mark.asyncio
async def test_cached_value_round_trip(search: CachedBookSearch, backend, params):
    key = build_search_key(params)
    await backend.set(key, [DUNE])

    result = await search.search_with_cache(params, SlowFetch(books=[EMMA]))

    assert result.cached is True
    assert result.books == [DUNE]


@pytest.mark.asyncio
async def test_preferences_recorded_for_authenticated_users(
    search: CachedBookSearch, params
):
    await search.search_with_cache(params, SlowFetch())

    preferences = await search.get_user_preferences("42")

    assert isinstance(preferences, UserPreferences)
    assert preferences.last_search_type == "title"
    assert preferences.include_external_preference is True


@pytest.mark.asyncio
async def test_preferences_not_recorded_for_anonymous_users(
    search: CachedBookSearch, backend
):
    await search.search_with_cache(SearchCacheKey(query="dune"), SlowFetch())

    assert len(await backend.get_all_keys()) == 1
    assert await search.get_user_preferences("") is None


@pytest.mark.asyncio
async def test_book_metadata_cache(search: CachedBookSearch, clock):
    await search.cache_book_metadata("1", {"pageCount": 412}, user_id="42")

    assert await search.get_cached_book_metadata("1") == {"pageCount": 412}

    clock.advance(search.config.metadata_ttl + 1)
    assert await search.get_cached_book_metadata("1") is None


@pytest.mark.asyncio
async def test_book_metadata_cleared_with_its_owner(search: CachedBookSearch):
    await search.cache_book_metadata("1", {"pageCount": 412}, user_id="42")
    await search.cache_book_metadata("2", {"pageCount": 474})

    assert await search.logout("42") == 1
    assert await search.get_cached_book_metadata("1") is None
    assert await search.get_cached_book_metadata("2") == {"pageCount": 474}


@pytest.mark.asyncio
async def test_hit_rate_counts_search_lookups_only(search: CachedBookSearch, params):
    fetch = SlowFetch()

    await search.search_with_cache(params, fetch)
    await search.search_with_cache(params, fetch)
    for book_id in ("1", "2", "3"):
        await search.get_cached_book_metadata(book_id)
    await search.get_user_preferences("42")
    result = await search.search_with_cache(params, fetch)

    stats = search.get_cache_stats()
    assert stats.hits == 2
    assert stats.misses == 1
    assert result.hit_rate == pytest.approx(2 / 3)


@pytest.mark.asyncio
async def test_logout_clears_only_that_user(search: CachedBookSearch, params):
    anonymous = SearchCacheKey(query="dune")
    other_user = SearchCacheKey(query="dune", user_id="7")
    for p in (params, anonymous, other_user):
        await search.search_with_cache(p, SlowFetch())

    cleared = await search.logout("42")

    # search results plus the remembered preferences
    assert cleared == 2
    assert await search.get_cached_search(params) is None
    assert await search.get_user_preferences("42") is None
    assert await search.get_cached_search(anonymous) == [DUNE]
    assert await search.get_cached_search(other_user) == [DUNE]


@pytest.mark.asyncio
async def test_clear_user_cache_without_user_is_noop(search: CachedBookSearch):
    await search.search_with_cache(SearchCacheKey(query="dune"), SlowFetch())

    assert await search.clear_user_cache(None) == 0
    assert await search.get_cached_search(SearchCacheKey(query="dune")) == [DUNE]


@pytest.mark.asyncio
async def test_clear_cache(search: CachedBookSearch, params):
    await search.search_with_cache(params, SlowFetch())

    await search.clear_cache()
    result = await search.search_with_cache(params, SlowFetch(books=[EMMA]))

    assert result.cached is False
    assert result.books == [EMMA]


@pytest.mark.asyncio
async def test_invalidate_pending_after_mutation(search: CachedBookSearch, params):
    before = SlowFetch(books=[DUNE], delay=0.05)
    after = SlowFetch(books=[EMMA])

    stale = asyncio.create_task(search.search_with_cache(params, before))
    await asyncio.sleep(0)
    assert search.invalidate_pending() == 1

    fresh = await search.search_with_cache(params, after)
    await stale

    assert after.calls == 1
    assert fresh.books == [EMMA]
    # the older fetch settled last but must not overwrite the fresh result
    assert await search.get_cached_search(params) == [EMMA]


@pytest.mark.asyncio
async def test_clear_cache_during_fetch_stores_nothing(
    search: CachedBookSearch, backend, params
):
    task = asyncio.create_task(search.search_with_cache(params, SlowFetch(delay=0.05)))
    await asyncio.sleep(0.01)

    await search.clear_cache()
    result = await task

    assert result.books == [DUNE]
    assert await backend.get_all_keys() == []


@pytest.mark.asyncio
async def test_logout_during_fetch_leaves_nothing_for_that_user(
    search: CachedBookSearch, backend, params
):
    task = asyncio.create_task(search.search_with_cache(params, SlowFetch(delay=0.05)))
    await asyncio.sleep(0.01)
    assert len(search.deduplicator) == 1

    await search.logout("42")
    result = await task

    assert result.books == [DUNE]
    assert result.cached is False
    assert await backend.get_all_keys() == []
    assert await search.get_user_preferences("42") is None


def test_defaults_follow_config():
    config = CacheConfig(search_ttl=42, cleanup_interval=5)
    search = CachedBookSearch(config=config)

    assert isinstance(search.backend, MemoryBackend)
    assert search.backend.ttl == 42
    assert search.backend.cleanup_interval == 5
    assert isinstance(search.deduplicator, RequestDeduplicator)


def test_injected_collaborators_are_used():
    backend = MemoryBackend()
    deduplicator = RequestDeduplicator()

    search = CachedBookSearch(backend=backend, deduplicator=deduplicator)

    assert search.backend is backend
    assert search.deduplicator is deduplicator
