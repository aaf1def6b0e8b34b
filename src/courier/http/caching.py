"""Caching decorator: short-circuits repeat requests from a keyed TTL store.

The cache key is ``request_path`` alone. Method and body are ignored, so a
GET and a POST to the same path share an entry; callers that need to keep
them apart must disable caching (``cache_duration_minutes <= 0``) for one of
them.
"""

from __future__ import annotations

from typing import Any

from courier.core.cache import CacheBackend
from courier.core.cancellation import CancellationToken
from courier.core.logging import get_logger
from courier.http.models import RequestUnit
from courier.http.sender import Sender

logger = get_logger(__name__)


class CachingSender:
    """Wraps a sender with a best-effort cache keyed by ``request_path``.

    Store failures on either lookup or write are logged and swallowed;
    caching never turns a completed request into a failure.
    """

    def __init__(self, inner: Sender, cache: CacheBackend) -> None:
        self._inner = inner
        self._cache = cache

    async def send(
        self, unit: RequestUnit[Any], cancellation: CancellationToken | None = None
    ) -> RequestUnit[Any]:
        if unit.cache_duration_minutes <= 0:
            return await self._inner.send(unit, cancellation)

        key = unit.request_path
        cached = self._lookup(key)
        if cached is not None:
            logger.debug("cache.hit", key=key)
            return cached

        logger.debug("cache.miss", key=key)
        result = await self._inner.send(unit, cancellation)
        self._store(key, result)
        return result

    def _lookup(self, key: str) -> RequestUnit[Any] | None:
        try:
            cached = self._cache.get(key)
        except Exception as e:
            logger.error("cache.get_failed", key=key, error=str(e), error_type=type(e).__name__)
            return None
        if isinstance(cached, RequestUnit):
            return cached.copy()
        return None

    def _store(self, key: str, unit: RequestUnit[Any]) -> None:
        try:
            self._cache.set(key, unit.copy(), ttl_seconds=unit.cache_duration_minutes * 60)
        except Exception as e:
            logger.error("cache.set_failed", key=key, error=str(e), error_type=type(e).__name__)


__all__ = ["CachingSender"]
