class ChapterOneCacheError(Exception):
    """Base class for all exceptions in chapterone_cache."""


class CacheError(ChapterOneCacheError):
    """Exception raised for cache-related errors."""


class BookSearchError(ChapterOneCacheError):
    """Exception raised when the book search backend call fails."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
