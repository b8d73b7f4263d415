"""Small in-memory TTL cache for repeated list/detail reads.

Entries expire a fixed number of seconds after they were stored. There is no
dependency tracking: writers invalidate the key patterns they know they touch,
and anything else may be served stale for up to the entry's TTL.
"""

import asyncio
import json
import re
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, TypeVar

from storefront.core.config import settings
from storefront.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class CacheItem:
    value: Any
    stored_at: float
    ttl: float

    def expired(self, now: float) -> bool:
        return now - self.stored_at > self.ttl


class MemoryCache:
    def __init__(self, default_ttl: float = None, clock: Callable[[], float] = time.monotonic):
        self.default_ttl = default_ttl if default_ttl is not None else settings.CACHE_DEFAULT_TTL_SECONDS
        self._clock = clock
        self._items: Dict[str, CacheItem] = {}
        self._lock = threading.Lock()

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        item = CacheItem(value=value, stored_at=self._clock(), ttl=ttl if ttl is not None else self.default_ttl)
        with self._lock:
            self._items[key] = item

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None on a miss. Expired entries are evicted."""
        with self._lock:
            item = self._items.get(key)
            if item is None:
                return None
            if item.expired(self._clock()):
                del self._items[key]
                return None
            return item.value

    def delete(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def invalidate_pattern(self, pattern: str) -> int:
        regex = re.compile(pattern)
        with self._lock:
            doomed = [key for key in self._items if regex.search(key)]
            for key in doomed:
                del self._items[key]
        return len(doomed)

    def size(self) -> int:
        with self._lock:
            return len(self._items)

    def cleanup(self) -> int:
        """Drop every expired entry and return how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [key for key, item in self._items.items() if item.expired(now)]
            for key in expired:
                del self._items[key]
        return len(expired)


cache = MemoryCache()


def make_key(*parts) -> str:
    return ":".join(str(part) for part in parts)


def _filters_part(filters: Optional[dict]) -> str:
    if not filters:
        return "all"
    return json.dumps(filters, sort_keys=True, default=str)


class cache_keys:
    @staticmethod
    def products(filters: Optional[dict] = None) -> str:
        return make_key("products", _filters_part(filters))

    @staticmethod
    def product(ident) -> str:
        return make_key("product", ident)

    @staticmethod
    def categories(filters: Optional[dict] = None) -> str:
        return make_key("categories", _filters_part(filters))

    @staticmethod
    def category(ident) -> str:
        return make_key("category", ident)

    @staticmethod
    def stats() -> str:
        return make_key("stats", "summary")

    @staticmethod
    def homepage() -> str:
        return make_key("homepage", "data")


def with_cache(key: str, fn: Callable[[], T], ttl: Optional[float] = None, store: MemoryCache = None) -> T:
    store = store if store is not None else cache
    cached = store.get(key)
    if cached is not None:
        return cached
    result = fn()
    store.set(key, result, ttl)
    return result


def invalidate_catalogue(store: MemoryCache = None) -> None:
    """Forget every cached read that embeds product or category data."""
    store = store if store is not None else cache
    for pattern in (r"^products:", r"^product:", r"^categories:", r"^category:", r"^homepage:", r"^stats:"):
        store.invalidate_pattern(pattern)


async def sweep_periodically(store: MemoryCache = None, interval: float = None) -> None:
    store = store if store is not None else cache
    interval = interval if interval is not None else settings.CACHE_SWEEP_INTERVAL_SECONDS
    while True:
        await asyncio.sleep(interval)
        removed = store.cleanup()
        if removed:
            logger.info("cache_swept", removed=removed, remaining=store.size())
