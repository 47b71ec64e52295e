"""HTTP client for the book backend search endpoint."""

from collections.abc import Awaitable
from collections.abc import Callable
from logging import getLogger
from typing import Any
from typing import Optional

import httpx
from pydantic import TypeAdapter
from pydantic import ValidationError

from .config import CacheConfig
from .exceptions import BookSearchError
from .models import Book
from .types import SearchCacheKey

SEARCH_PATH = "/api/books/search"

_books_adapter = TypeAdapter(list[Book])
logger = getLogger(__name__)


class BookApiClient:
    """Async client for ``GET /api/books/search``.

    Example:
        ```python
        async with BookApiClient() as client:
            search = CachedBookSearch()
            params = SearchCacheKey(query="dune", search_type="title")
            result = await search.search_with_cache(params, client.search_fn(params))
        ```
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        limit: Optional[int] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        config: Optional[CacheConfig] = None,
    ) -> None:
        config = config or CacheConfig()
        self.base_url = (base_url or config.api_base_url).rstrip("/")
        self.limit = limit or config.search_limit
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout or config.request_timeout,
            transport=transport,
        )

    async def search_books(
        self,
        query: str,
        *,
        search_type: str = "all",
        include_external: bool = False,
    ) -> list[Book]:
        """Run a search on the backend.

        Raises:
            BookSearchError: If the request fails, the backend answers with a
                non-2xx status or the payload is not a list of books
        """
        params: dict[str, Any] = {
            "query": query,
            "external": "true" if include_external else "false",
            "searchType": search_type,
            "limit": self.limit,
        }
        try:
            response = await self._client.get(SEARCH_PATH, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            msg = f"Backend search failed: {status} {e.response.reason_phrase}"
            raise BookSearchError(msg, status_code=status) from e
        except httpx.HTTPError as e:
            msg = f"Backend search failed: {e}"
            raise BookSearchError(msg) from e

        try:
            books = _books_adapter.validate_json(response.content)
        except ValidationError as e:
            msg = "Backend search returned an invalid payload"
            raise BookSearchError(msg, status_code=response.status_code) from e

        logger.debug("Backend search for %r returned %d books", query, len(books))
        return books

    def search_fn(self, params: SearchCacheKey) -> Callable[[], Awaitable[list[Book]]]:
        """Bind ``params`` into a fetch function for ``search_with_cache``."""

        async def fetch() -> list[Book]:
            return await self.search_books(
                params.query,
                search_type=params.search_type,
                include_external=params.include_external,
            )

        return fetch

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "BookApiClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
