"""Payload models exchanged with the book backend."""

from datetime import datetime
from datetime import timezone

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field


class Book(BaseModel):
    """A book record as returned by the backend search endpoint."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str | None = None
    title: str
    author: str = ""
    cover_image: str | None = Field(default=None, alias="coverImage")
    pace: str | None = None
    tone: list[str] = Field(default_factory=list)
    themes: list[str] = Field(default_factory=list)
    description: str = ""
    best_for: list[str] = Field(default_factory=list, alias="bestFor")
    categories: list[str] = Field(default_factory=list)
    isbn: str | None = None
    published_year: int | None = Field(default=None, alias="publishedYear")
    rating: float | None = None
    review_snippet: str | None = Field(default=None, alias="reviewSnippet")
    is_external: bool = Field(default=False, alias="isExternal")


class UserPreferences(BaseModel):
    """Search preferences remembered for an authenticated user."""

    last_search_type: str
    include_external_preference: bool
    last_search_time: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
