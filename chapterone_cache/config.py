"""Cache configuration settings."""

from pydantic import BaseModel
from pydantic import Field


class CacheConfig(BaseModel):
    """Cache configuration settings."""

    # Freshness windows
    search_ttl: float = Field(
        default=24 * 60 * 60,
        ge=0,
        description="Search result time-to-live in seconds (default: 24 hours)",
    )
    metadata_ttl: float = Field(
        default=7 * 24 * 60 * 60,
        ge=0,
        description="Book metadata time-to-live in seconds (default: 7 days)",
    )
    preferences_ttl: float = Field(
        default=30 * 24 * 60 * 60,
        ge=0,
        description="User preference time-to-live in seconds (default: 30 days)",
    )

    # Sweep settings
    cleanup_interval: float = Field(
        default=60 * 60,
        gt=0,
        description="Seconds between expired-entry sweeps when the sweep task is running",
    )

    # Book API settings
    api_base_url: str = Field(
        default="http://localhost:3001",
        description="Base URL of the book backend",
    )
    search_limit: int = Field(
        default=100,
        gt=0,
        description="Maximum number of books requested per search",
    )
    request_timeout: float = Field(
        default=30.0,
        gt=0,
        description="HTTP timeout in seconds for book API calls",
    )
