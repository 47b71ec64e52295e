from typing import Annotated

from fastapi import Depends

from .proxy import SearchProxy
from .search import CachedBookSearch


def get_book_search() -> CachedBookSearch:
    """FastAPI dependency returning the default search service."""
    return SearchProxy.get_search()


BookSearch = Annotated[CachedBookSearch, Depends(get_book_search)]
