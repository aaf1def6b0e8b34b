"""
Structured error types for the courier request pipeline.

Every failure the pipeline knows about has a typed error with metadata for
retry decisions, categorization and logging. Only :class:`ValidationError`
is ever raised to callers of a sender; every other class is captured into
``RequestUnit.errors`` and the unit is returned normally.

Manifesto:
    - **Typed taxonomy:** Validation, transport, decode, breaker and
      cancellation failures are distinct classes
    - **Explicit retry semantics:** Each error knows if it's retryable
    - **Rich context:** Errors carry URL, status and method for logging
    - **Error chaining:** The original exception is kept as ``cause``

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────┐
        │                       CourierError                           │
        │  (category, retryable, context, cause)                      │
        ├─────────────────────────────────────────────────────────────┤
        │                                                              │
        │  ValidationError     TransportError       DecodeError        │
        │  (VALIDATION)        (NETWORK, retry)     (PARSE)            │
        │                           │                                  │
        │                      RequestTimeoutError                     │
        │                                                              │
        │  BreakerOpenError    CancellationError                       │
        │  (NETWORK, retry)    (CANCELLED)                             │
        └─────────────────────────────────────────────────────────────┘

Examples:
    >>> error = TransportError("connection refused")
    >>> error.retryable
    True
    >>> error.with_context(url="https://api.example.com/status").context.url
    'https://api.example.com/status'

Guardrails:
    ❌ DON'T: Raise TransportError/DecodeError out of a sender
    ✅ DO: Record them on the RequestUnit and return it

    ❌ DON'T: Swallow the original exception
    ✅ DO: Pass it as cause= for error chaining

Tags:
    error-handling, exception-hierarchy, retry-logic, courier

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and routing."""

    NETWORK = "NETWORK"           # Connection, timeout, DNS, breaker
    PARSE = "PARSE"               # Body did not decode
    VALIDATION = "VALIDATION"     # Missing path/method, bad arguments
    CONFIG = "CONFIG"             # Invalid settings
    CANCELLED = "CANCELLED"       # Caller aborted the operation
    INTERNAL = "INTERNAL"         # Bugs, unexpected state
    UNKNOWN = "UNKNOWN"           # Uncategorized errors


@dataclass
class ErrorContext:
    """
    Structured metadata context for errors.

    Attributes:
        url: URL that was being accessed
        method: HTTP method of the request
        http_status: HTTP status code if a response was obtained
        task_id: Scheduler task identifier, when raised inside a worker
        metadata: Additional key-value pairs
    """

    url: str | None = None
    method: str | None = None
    http_status: int | None = None
    task_id: int | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["url", "method", "http_status", "task_id"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class CourierError(Exception):
    """
    Base exception for all courier errors.

    Subclasses set ``default_category`` and ``default_retryable`` to give
    sensible defaults for their domain.

    Examples:
        >>> error = CourierError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.to_dict()["retryable"]
        False
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> CourierError:
        """
        Add context to this error (fluent API).

        Usage:
            raise TransportError("Failed").with_context(
                url="https://api.example.com/data",
                method="GET",
            )
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# VALIDATION ERRORS (raised, never captured)
# =============================================================================


class ValidationError(CourierError):
    """
    Invalid input to a sender or the scheduler.

    Never retryable - the caller must fix the request.
    """

    default_category = ErrorCategory.VALIDATION
    default_retryable = False

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        value: Any = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.field:
            result["field"] = self.field
        if self.value is not None:
            result["value"] = repr(self.value)
        return result


# =============================================================================
# OPERATIONAL ERRORS (captured into RequestUnit.errors)
# =============================================================================


class TransportError(CourierError):
    """Network unreachable, connection reset or other transport failure."""

    default_category = ErrorCategory.NETWORK
    default_retryable = True


class RequestTimeoutError(TransportError):
    """The transport did not answer in time."""


class DecodeError(CourierError):
    """A response body did not parse into the expected type."""

    default_category = ErrorCategory.PARSE
    default_retryable = False


class BreakerOpenError(CourierError):
    """Call short-circuited because the circuit breaker is open."""

    default_category = ErrorCategory.NETWORK
    default_retryable = True

    def __init__(self, message: str = "Circuit breaker is open", **kwargs: Any):
        super().__init__(message, **kwargs)


class CancellationError(CourierError):
    """The caller's cancellation signal fired while the operation was pending."""

    default_category = ErrorCategory.CANCELLED
    default_retryable = False

    def __init__(self, message: str = "Operation cancelled", **kwargs: Any):
        super().__init__(message, **kwargs)


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def is_retryable(error: Exception) -> bool:
    """Check if an error is retryable."""
    if isinstance(error, CourierError):
        return error.retryable
    return isinstance(error, (ConnectionError, TimeoutError, OSError))


def categorize_error(error: BaseException) -> ErrorCategory:
    """Get the category of an error."""
    if isinstance(error, CourierError):
        return error.category
    if isinstance(error, asyncio.CancelledError):
        return ErrorCategory.CANCELLED
    if isinstance(error, (ConnectionError, TimeoutError, OSError)):
        return ErrorCategory.NETWORK
    if isinstance(error, ValueError):
        return ErrorCategory.VALIDATION
    return ErrorCategory.UNKNOWN


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "CourierError",
    "ValidationError",
    "TransportError",
    "RequestTimeoutError",
    "DecodeError",
    "BreakerOpenError",
    "CancellationError",
    "is_retryable",
    "categorize_error",
]
