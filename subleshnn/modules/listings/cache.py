"""In-process cache for browse queries, fresh for settings.listings_cache_ttl_sec."""

import time
from typing import Any, Callable, Dict, List, Optional, Tuple

from subleshnn.config import settings

# key -> (rows, expiry on the monotonic clock)
_BROWSE_CACHE: Dict[str, Tuple[List[Dict[str, Any]], float]] = {}


def get_or_fetch(key: str, fetch: Callable[[], List[Dict[str, Any]]], ttl: Optional[int] = None) -> List[Dict[str, Any]]:
    """Return cached rows for key, or call fetch and keep its result until the freshness window ends"""
    now = time.monotonic()
    cached = _BROWSE_CACHE.get(key)
    if cached is not None:
        rows, expiry = cached
        if now < expiry:
            return rows
        del _BROWSE_CACHE[key]
    rows = fetch()
    ttl = settings.listings_cache_ttl_sec if ttl is None else ttl
    if ttl > 0:
        _BROWSE_CACHE[key] = (rows, now + ttl)
    return rows


def invalidate(key: Optional[str] = None) -> None:
    """Drop one cached key, or everything"""
    if key is None:
        _BROWSE_CACHE.clear()
    else:
        _BROWSE_CACHE.pop(key, None)
