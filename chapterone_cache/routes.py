"""Cache monitoring and management routes."""

from typing import Any

from fastapi import APIRouter
from fastapi import FastAPI

from .dependencies import BookSearch
from .types import CacheEntry


def _entry_record(entry: CacheEntry, now: float) -> dict[str, Any]:
    is_expired = entry.is_expired(now)
    ttl_remaining = None
    if entry.ttl is not None:
        ttl_remaining = max(0.0, entry.ttl - entry.age(now))
    return {
        "cache_key": entry.key,
        "user_id": entry.user_id,
        "age": entry.age(now),
        "ttl_remaining": ttl_remaining,
        "is_expired": is_expired,
        "size": len(entry.value) if isinstance(entry.value, list) else None,
    }


def add_routes(app: FastAPI, prefix: str = "/cache") -> None:
    """Register cache monitoring routes on ``app``.

    Args:
        app: The FastAPI application
        prefix: URL prefix for the routes
    """
    router = APIRouter(prefix=prefix, tags=["cache"])

    @router.get("/stats")
    async def cache_stats(search: BookSearch) -> dict[str, Any]:
        stats = search.get_cache_stats()
        entries = await search.backend.get_cache_data()
        return {
            "hits": stats.hits,
            "misses": stats.misses,
            "total_queries": stats.total_queries,
            "hit_rate": stats.hit_rate,
            "average_response_time_ms": stats.average_response_time_ms,
            "last_cleanup": stats.last_cleanup,
            "entries": len(entries),
            "pending_requests": len(search.deduplicator),
        }

    @router.get("/entries")
    async def cache_entries(search: BookSearch) -> dict[str, Any]:
        now = search.backend.now()
        entries = await search.backend.get_cache_data()
        records = [_entry_record(entry, now) for entry in entries.values()]
        expired = sum(1 for r in records if r["is_expired"])
        return {
            "entries": records,
            "total_entries": len(records),
            "valid_entries": len(records) - expired,
            "expired_entries": expired,
            "users": sorted({r["user_id"] for r in records if r["user_id"]}),
        }

    @router.delete("")
    async def clear_cache(search: BookSearch) -> dict[str, int]:
        return {"cleared": await search.clear_cache()}

    @router.delete("/users/{user_id}")
    async def clear_user_cache(user_id: str, search: BookSearch) -> dict[str, int]:
        return {"cleared": await search.clear_user_cache(user_id)}

    app.include_router(router)
