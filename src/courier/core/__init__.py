"""
Courier core primitives: errors, logging, cancellation, cache and settings.
"""

from courier.core.cache import CacheBackend, InMemoryCache
from courier.core.cancellation import CancellationToken
from courier.core.errors import (
    BreakerOpenError,
    CancellationError,
    CourierError,
    DecodeError,
    ErrorCategory,
    ErrorContext,
    RequestTimeoutError,
    TransportError,
    ValidationError,
)
from courier.core.logging import configure_from_settings, configure_logging, get_logger
from courier.core.settings import CourierSettings, clear_settings_cache, get_settings

__all__ = [
    "BreakerOpenError",
    "CacheBackend",
    "CancellationError",
    "CancellationToken",
    "CourierError",
    "CourierSettings",
    "DecodeError",
    "ErrorCategory",
    "ErrorContext",
    "InMemoryCache",
    "RequestTimeoutError",
    "TransportError",
    "ValidationError",
    "clear_settings_cache",
    "configure_from_settings",
    "configure_logging",
    "get_logger",
    "get_settings",
]
