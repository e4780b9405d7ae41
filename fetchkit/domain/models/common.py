"""Defines common Value Objects used across the client and the content loader.

These objects represent simple values like endpoints, resource names and
query pairs, ensuring consistency and type safety.
"""

from typing import Any, List, Mapping, NewType, Optional, Sequence, Tuple, TypedDict, Union

# === Request Context ===
BearerToken = NewType("BearerToken", str)        # Opaque access token

# A query may be given as a mapping or as ordered pairs; values are stringified.
QueryValue = Union[str, int, float, bool, None]
QueryParams = Union[Mapping[str, QueryValue], Sequence[Tuple[str, QueryValue]]]

# === Content Context ===
ResourceName = NewType("ResourceName", str)      # Logical content name, e.g. "header"

# === Caching Context ===
CacheKey = NewType("CacheKey", str)              # Unique key for a cache entry


class BackoffPolicy(TypedDict):
    """Value Object representing retry backoff configuration."""
    base_delay: float
    max_delay: float
    factor: float


def build_query(query: Optional[QueryParams]) -> List[Tuple[str, str]]:
    """Normalizes query parameters into an ordered list of string pairs.

    Pairs whose value is None or an empty string are dropped. Booleans are
    rendered lowercase so they read the way JSON APIs expect.

    Args:
        query: Mapping or sequence of (key, value) pairs, or None.

    Returns:
        A new list of (key, value) tuples in the original order.
    """
    if not query:
        return []
    items = query.items() if isinstance(query, Mapping) else query
    pairs: List[Tuple[str, str]] = []
    for key, value in items:
        if value is None:
            continue
        if isinstance(value, bool):
            text = "true" if value else "false"
        else:
            text = str(value)
        if text == "":
            continue
        pairs.append((key, text))
    return pairs


def content_path(name: Any) -> str:
    """Maps a logical resource name to its path in the static content store."""
    return f"content/{name}.json"
