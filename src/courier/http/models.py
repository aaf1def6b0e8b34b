"""Request/response record passed through the sender pipeline."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from http import HTTPStatus
from typing import Any, Generic, TypeVar

from courier.core.errors import ValidationError

T = TypeVar("T")


class HttpMethod(str, Enum):
    """HTTP methods a RequestUnit may carry."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"


@dataclass
class RequestUnit(Generic[T]):
    """One request/response exchange and its outcome.

    ``request_path`` identifies the target and doubles as the cache key.
    Result fields (``response``, ``status_code``, ``errors``, ``retries``,
    timing) are filled in as the unit travels through the pipeline; callers
    inspect them instead of catching exceptions.

    ``response_type`` selects how the body is decoded: ``None`` gives plain
    JSON data, ``str`` the raw text, ``bytes`` the raw body, and any other
    type a validated instance of that type.
    """

    request_path: str
    method: HttpMethod | None = HttpMethod.GET
    request_body: str | bytes | None = None
    headers: dict[str, str] = field(default_factory=dict)
    response_type: Any = None
    cache_duration_minutes: int = 1
    iteration: int = 0

    response: T | None = None
    status_code: int = 0
    errors: list[str] = field(default_factory=list)
    retries: int = 0
    elapsed_ms: float = 0.0
    completed_at: datetime | None = None

    def validate(self) -> None:
        """Raise :class:`ValidationError` unless path and method are set."""
        if not self.request_path or not self.request_path.strip():
            raise ValidationError(
                "request_path cannot be empty",
                field="request_path",
                value=self.request_path,
            )
        if self.method is None:
            raise ValidationError("method must be set", field="method")

    @property
    def succeeded(self) -> bool:
        """A 2xx status with a decoded response."""
        return 200 <= self.status_code < 300 and self.response is not None

    @property
    def status(self) -> HTTPStatus | None:
        try:
            return HTTPStatus(self.status_code)
        except ValueError:
            return None

    def record_error(self, message: str) -> None:
        self.errors.append(message)

    def copy(self) -> RequestUnit[T]:
        """Independent deep copy (the cache stores and hands these out)."""
        return copy.deepcopy(self)

    def fresh_attempt(self) -> RequestUnit[T]:
        """Copy of the request with result fields cleared, for one retry attempt."""
        return RequestUnit(
            request_path=self.request_path,
            method=self.method,
            request_body=self.request_body,
            headers=dict(self.headers),
            response_type=self.response_type,
            cache_duration_minutes=self.cache_duration_minutes,
            iteration=self.iteration,
            errors=list(self.errors),
        )

    def result_age(self, now: datetime | None = None) -> str:
        """Human-readable age of ``completed_at``.

        Any leftover milliseconds round the seconds up.
        """
        if self.completed_at is None:
            return "Result Cache date is null."

        delta = (now or datetime.now(UTC)) - self.completed_at
        days = delta.days
        hours, remainder = divmod(delta.seconds, 3600)
        minutes, seconds = divmod(remainder, 60)
        if delta.microseconds >= 1000:
            seconds += 1

        if seconds >= 60:
            minutes += seconds // 60
            seconds %= 60
        if minutes >= 60:
            hours += minutes // 60
            minutes %= 60
        if hours >= 24:
            days += hours // 24
            hours %= 24

        return f"Result Cache Age: {days} days, {hours} hours, {minutes} minutes, {seconds} seconds."

    def to_dict(self) -> dict[str, Any]:
        """Summary for logging / CLI output (the response is left as-is)."""
        return {
            "request_path": self.request_path,
            "method": self.method.value if self.method else None,
            "iteration": self.iteration,
            "status_code": self.status_code,
            "succeeded": self.succeeded,
            "errors": list(self.errors),
            "retries": self.retries,
            "elapsed_ms": self.elapsed_ms,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "response": self.response,
        }


__all__ = ["HttpMethod", "RequestUnit"]
