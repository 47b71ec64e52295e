"""Cache key builders.

Search and preference keys start with a namespace and a user partition::

    search|||user=42|||q=dune|||type=title|||ext=true
    search|||anon|||q=dune|||type=title|||ext=false
    user_prefs|||user=42

Book metadata is keyed by book id alone (``book_meta|||<id>``).

Free-text fields are percent-encoded, so the separator can only appear
between fields and the partition of a key can always be recovered.
"""

import json
from typing import Any
from urllib.parse import quote
from urllib.parse import unquote

from .types import CACHE_KEY_SEPARATOR
from .types import SearchCacheKey

SEARCH_NAMESPACE = "search"
PREFERENCES_NAMESPACE = "user_prefs"
METADATA_NAMESPACE = "book_meta"
ANONYMOUS_PARTITION = "anon"
USER_PARTITION_PREFIX = "user="


def _encode(value: str) -> str:
    return quote(value, safe="")


def normalize_user_id(user_id: str | int | None) -> str | None:
    """Return a usable user id, or None when the caller is anonymous."""
    if user_id is None:
        return None
    normalized = str(user_id).strip()
    return normalized or None


def user_partition(user_id: str | int | None) -> str:
    """Return the partition segment for a user id."""
    normalized = normalize_user_id(user_id)
    if normalized is None:
        return ANONYMOUS_PARTITION
    return f"{USER_PARTITION_PREFIX}{_encode(normalized)}"


def build_search_key(params: SearchCacheKey) -> str:
    """Build the cache key for a search.

    Field order is fixed, so two field-wise equal parameter sets always
    produce the same key.
    """
    return CACHE_KEY_SEPARATOR.join(
        [
            SEARCH_NAMESPACE,
            user_partition(params.user_id),
            f"q={_encode(params.query)}",
            f"type={_encode(params.search_type)}",
            f"ext={'true' if params.include_external else 'false'}",
        ]
    )


def build_preferences_key(user_id: str | int) -> str:
    return CACHE_KEY_SEPARATOR.join([PREFERENCES_NAMESPACE, user_partition(user_id)])


def build_metadata_key(book_id: str | int) -> str:
    """Metadata is shared by book id; its owner is tracked on the entry."""
    return CACHE_KEY_SEPARATOR.join([METADATA_NAMESPACE, _encode(str(book_id))])


def build_request_key(endpoint: str, params: dict[str, Any] | None = None) -> str:
    """Build a deduplication key for an arbitrary backend call.

    Args:
        endpoint: Logical endpoint name (e.g. "saved_books:check")
        params: Request parameters, serialized with sorted keys

    Returns:
        The key as "<endpoint>:<params json>"
    """
    param_string = json.dumps(params, sort_keys=True, default=str) if params else ""
    return f"{endpoint}:{param_string}"


def parse_user_id(key: str) -> str | None:
    """Recover the user id encoded in a key, None for anonymous or foreign keys."""
    parts = key.split(CACHE_KEY_SEPARATOR)
    if len(parts) < 2 or not parts[1].startswith(USER_PARTITION_PREFIX):
        return None
    return unquote(parts[1][len(USER_PARTITION_PREFIX) :])
