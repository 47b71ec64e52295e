"""ChapterOne search cache: TTL-bound book search caching with request deduplication."""

from .client import BookApiClient as BookApiClient
from .config import CacheConfig as CacheConfig
from .dedup import RequestDeduplicator as RequestDeduplicator
from .dependencies import BookSearch as BookSearch
from .dependencies import get_book_search as get_book_search
from .keys import build_request_key as build_request_key
from .keys import build_search_key as build_search_key
from .models import Book as Book
from .proxy import SearchProxy as SearchProxy
from .routes import add_routes as add_routes
from .search import CachedBookSearch as CachedBookSearch
from .types import CachedSearchResult as CachedSearchResult
from .types import SearchCacheKey as SearchCacheKey

__all__ = [
    "Book",
    "BookApiClient",
    "BookSearch",
    "CacheConfig",
    "CachedBookSearch",
    "CachedSearchResult",
    "RequestDeduplicator",
    "SearchCacheKey",
    "SearchProxy",
    "add_routes",
    "build_request_key",
    "build_search_key",
    "get_book_search",
]
