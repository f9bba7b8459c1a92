"""TTL cache with size cap, plus a ``with_cache`` wrapper for coroutine functions."""

from __future__ import annotations

import functools
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TTL_SECONDS = 300.0
DEFAULT_MAX_SIZE = 100


@dataclass
class _Entry(Generic[T]):
    data: T
    stored_at: float
    ttl: float


class Cache(Generic[T]):
    def __init__(self, *, ttl: float = DEFAULT_TTL_SECONDS, max_size: int = DEFAULT_MAX_SIZE) -> None:
        self._entries: dict[str, _Entry[T]] = {}
        self._default_ttl = ttl
        self._max_size = max(1, int(max_size))

    def get(self, key: str) -> Optional[T]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if time.monotonic() - entry.stored_at > entry.ttl:
            del self._entries[key]
            return None
        return entry.data

    def set(self, key: str, value: T, ttl: float | None = None) -> None:
        if key not in self._entries and len(self._entries) >= self._max_size:
            # dicts keep insertion order, so the first key is the oldest.
            oldest = next(iter(self._entries))
            del self._entries[oldest]
        self._entries[key] = _Entry(value, time.monotonic(), ttl or self._default_ttl)

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def cleanup(self) -> int:
        """Drop expired entries and return how many were removed."""
        now = time.monotonic()
        expired = [k for k, e in self._entries.items() if now - e.stored_at > e.ttl]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def stats(self) -> dict[str, Any]:
        now = time.monotonic()
        return {
            "size": len(self._entries),
            "max_size": self._max_size,
            "default_ttl": self._default_ttl,
            "entries": [
                {"key": key, "age": now - entry.stored_at, "ttl": entry.ttl}
                for key, entry in self._entries.items()
            ],
        }


class CacheRegistry:
    """Named caches owned by whoever constructs the registry."""

    def __init__(self) -> None:
        self._caches: dict[str, Cache] = {}

    def get_cache(self, name: str, *, ttl: float = DEFAULT_TTL_SECONDS, max_size: int = DEFAULT_MAX_SIZE) -> Cache:
        cache = self._caches.get(name)
        if cache is None:
            cache = Cache(ttl=ttl, max_size=max_size)
            self._caches[name] = cache
        return cache

    def clear_all(self) -> None:
        for cache in self._caches.values():
            cache.clear()

    def cleanup_all(self) -> int:
        return sum(cache.cleanup() for cache in self._caches.values())

    def all_stats(self) -> dict[str, dict[str, Any]]:
        return {name: cache.stats() for name, cache in self._caches.items()}


def default_key(fn: Callable[..., Any], *args: Any, **kwargs: Any) -> str:
    return f"{fn.__qualname__}:{json.dumps([args, kwargs], sort_keys=True, default=str)}"


def with_cache(
    store: Cache,
    key_fn: Callable[..., str] | None,
    fn: Callable[..., Awaitable[T]],
) -> Callable[..., Awaitable[T]]:
    """Wrap coroutine function ``fn`` so results are memoized in ``store``.

    ``None`` results are not cached.
    """

    @functools.wraps(fn)
    async def wrapper(*args: Any, **kwargs: Any) -> T:
        key = key_fn(*args, **kwargs) if key_fn else default_key(fn, *args, **kwargs)
        cached = store.get(key)
        if cached is not None:
            logger.debug("Cache hit for %s", key)
            return cached
        result = await fn(*args, **kwargs)
        if result is not None:
            store.set(key, result)
        return result

    return wrapper
