"""
Pipeline assembly: the standard sender stack built from settings.

::

    TelemetrySender            timing, completed_at, last-chance error capture
      └── CachingSender        request_path-keyed TTL cache
            └── ResilientSender    retry inside circuit breaker
                  └── HttpSender       httpx transport + decode

Example:
    >>> async with create_client() as client:
    ...     sender = build_pipeline(client)
    ...     unit = await sender.send(RequestUnit("https://api.example.com/status"))
"""

from __future__ import annotations

import httpx

from courier.core.cache import CacheBackend, InMemoryCache
from courier.core.settings import CourierSettings, get_settings
from courier.http.caching import CachingSender
from courier.http.resilience import ResilientSender
from courier.http.sender import HttpSender, Sender
from courier.http.serializers import StringConverter
from courier.http.telemetry import TelemetrySender


def create_client(settings: CourierSettings | None = None, **kwargs) -> httpx.AsyncClient:
    """``httpx.AsyncClient`` configured from settings (timeout, HTTP/2, redirects)."""
    settings = settings or get_settings()
    kwargs.setdefault("timeout", settings.request_timeout_seconds)
    kwargs.setdefault("http2", settings.http2)
    kwargs.setdefault("follow_redirects", True)
    return httpx.AsyncClient(**kwargs)


def build_pipeline(
    client: httpx.AsyncClient,
    settings: CourierSettings | None = None,
    *,
    cache: CacheBackend | None = None,
    converter: StringConverter | None = None,
) -> Sender:
    """Compose Telemetry(Caching(Resilience(HttpSender))) over ``client``.

    Args:
        client: Transport; owned and closed by the caller
        settings: Policy source, defaults to :func:`get_settings`
        cache: Cache store, defaults to an :class:`InMemoryCache` sized from settings
        converter: Body decoder, defaults to the pydantic converter
    """
    settings = settings or get_settings()
    if cache is None:
        cache = InMemoryCache(
            max_size=settings.cache_max_size,
            default_ttl_seconds=max(settings.cache_duration_minutes, 1) * 60,
        )

    leaf = HttpSender(client, converter)
    resilient = ResilientSender(leaf, settings.resilience_options())
    return TelemetrySender(CachingSender(resilient, cache))


__all__ = ["build_pipeline", "create_client"]
