"""Process-wide default search service."""

from logging import getLogger

from .search import CachedBookSearch

_default_search: CachedBookSearch | None = None
logger = getLogger(__name__)


class SearchProxy:
    """Holder for the default :class:`CachedBookSearch` instance."""

    @staticmethod
    def get_search() -> CachedBookSearch:
        """Get the current search service, creating a default one on first use.

        Returns:
            The current search service
        """
        global _default_search
        if _default_search is None:
            logger.info("No search service set, creating default in-memory one")
            _default_search = CachedBookSearch()

        return _default_search

    @staticmethod
    def set_search(search: CachedBookSearch | None) -> None:
        """Set the default search service.

        Args:
            search: The search service to use, or None to drop the current one
        """
        global _default_search
        logger.info(
            "Setting search service to: <%s>",
            search.backend.__class__.__name__ if search else "None",
        )
        _default_search = search
