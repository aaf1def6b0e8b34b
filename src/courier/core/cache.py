"""
Cache store abstraction for the caching sender.

Provides a ``CacheBackend`` protocol and a bounded in-memory implementation.
:class:`~courier.http.caching.CachingSender` talks to any object satisfying
the protocol, so a distributed store can be plugged in without touching the
pipeline.

Architecture:
    ::

        CacheBackend (Protocol)
        └── InMemoryCache  — single-process, bounded LRU with TTL

        API: get(key) → value | None
             set(key, value, ttl_seconds=None)
             delete(key)
             exists(key) → bool
             clear()

Examples:
    >>> from courier.core.cache import InMemoryCache
    >>> cache = InMemoryCache(max_size=1000, default_ttl_seconds=60)
    >>> cache.set("https://api.example.com/status", {"status": "ok"})
    >>> cache.get("https://api.example.com/status")
    {'status': 'ok'}

Performance:
    - get/set: O(1) amortised dict access, LRU bookkeeping O(n) on touch
    - TTL cleanup: Lazy (checked on get/exists)

Guardrails:
    ❌ DON'T: Share an InMemoryCache across processes (no sharing)
    ✅ DO: Implement CacheBackend over a shared store for multi-process use

    ❌ DON'T: Cache without TTL (unbounded staleness)
    ✅ DO: Pass ttl_seconds on every set, or configure default_ttl_seconds

Tags:
    cache, caching, in-memory, ttl, lru, courier

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import time
from collections import OrderedDict
from collections.abc import Callable
from typing import Any, Protocol


class CacheBackend(Protocol):
    """Protocol for cache store implementations.

    Both ``get`` and ``set`` may raise; callers treat caching as
    best-effort and must not let a store failure fail a request.
    """

    def get(self, key: str) -> Any | None:
        """Return the cached value, or ``None`` on miss or expiry."""
        ...

    def set(self, key: str, value: Any, *, ttl_seconds: float | None = None) -> None:
        """Store a value. ``ttl_seconds=None`` uses the backend default."""
        ...

    def delete(self, key: str) -> None:
        """Remove a key. No-op if absent."""
        ...

    def exists(self, key: str) -> bool:
        """``True`` if the key is present and not expired."""
        ...

    def clear(self) -> None:
        """Remove all keys."""
        ...


class InMemoryCache:
    """Bounded in-memory cache with TTL support.

    Uses LRU eviction when ``max_size`` is reached. Expiry is computed
    against ``clock`` (``time.monotonic`` by default) so tests can drive
    time explicitly.

    Example:
        cache = InMemoryCache(max_size=500, default_ttl_seconds=60)
        cache.set("https://api.example.com/a", unit, ttl_seconds=300)
    """

    def __init__(
        self,
        *,
        max_size: int = 10_000,
        default_ttl_seconds: float | None = 60,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._store: OrderedDict[str, tuple[Any, float | None]] = OrderedDict()
        self._max_size = max_size
        self._default_ttl = default_ttl_seconds
        self._clock = clock

    def get(self, key: str) -> Any | None:
        """Retrieve a value by key."""
        if key not in self._store:
            return None

        value, expires_at = self._store[key]
        if expires_at is not None and self._clock() >= expires_at:
            self.delete(key)
            return None

        self._store.move_to_end(key)
        return value

    def set(self, key: str, value: Any, *, ttl_seconds: float | None = None) -> None:
        """Store a value with optional TTL."""
        ttl = ttl_seconds if ttl_seconds is not None else self._default_ttl
        expires_at = (self._clock() + ttl) if ttl else None

        if key not in self._store and len(self._store) >= self._max_size:
            self._store.popitem(last=False)

        self._store[key] = (value, expires_at)
        self._store.move_to_end(key)

    def delete(self, key: str) -> None:
        """Remove a key from the cache."""
        self._store.pop(key, None)

    def exists(self, key: str) -> bool:
        """Check if key exists and is not expired."""
        if key not in self._store:
            return False

        _, expires_at = self._store[key]
        if expires_at is not None and self._clock() >= expires_at:
            self.delete(key)
            return False

        return True

    def clear(self) -> None:
        """Remove all keys."""
        self._store.clear()

    def size(self) -> int:
        """Return current number of cached keys (expired keys included until touched)."""
        return len(self._store)


__all__ = [
    "CacheBackend",
    "InMemoryCache",
]
