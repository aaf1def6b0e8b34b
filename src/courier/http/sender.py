"""
Leaf sender: one HTTP exchange over ``httpx``.

:class:`Sender` is the contract every pipeline stage implements:
``await sender.send(unit, cancellation) -> unit``. :class:`HttpSender` is the
leaf that actually talks to the network; the caching, resilience and
telemetry decorators wrap it (or each other) and add one concern each.

Failure contract:
    - Missing path/method → :class:`~courier.core.errors.ValidationError`
      raised immediately (the only exception that escapes).
    - Timeout → error entry, status 408.
    - Connection/transport failure → error entry, status 503.
    - Non-2xx status → error entry, real status, no response.
    - Decode failure → error entry, real status, no response.
    - Cancellation or anything unexpected → error entry, status 500.

Example:
    >>> async with httpx.AsyncClient(timeout=10) as client:
    ...     sender = HttpSender(client)
    ...     unit = await sender.send(RequestUnit("https://api.example.com/status"))
    ...     unit.status_code, unit.errors
    (200, [])
"""

from __future__ import annotations

from http import HTTPStatus
from typing import Any, Protocol

import httpx

from courier.core.cancellation import CancellationToken, guarded
from courier.core.errors import (
    CancellationError,
    CourierError,
    DecodeError,
    RequestTimeoutError,
    TransportError,
)
from courier.core.logging import get_logger
from courier.http.models import RequestUnit
from courier.http.serializers import PydanticStringConverter, StringConverter

logger = get_logger(__name__)


def _describe(error: Exception) -> str:
    return str(error) or type(error).__name__


class Sender(Protocol):
    """Anything that can execute a RequestUnit and return it completed."""

    async def send(
        self, unit: RequestUnit[Any], cancellation: CancellationToken | None = None
    ) -> RequestUnit[Any]:
        ...


class HttpSender:
    """Executes one RequestUnit against an ``httpx.AsyncClient``.

    The client is owned by the caller (connection pooling, base URL,
    timeouts and HTTP/2 are configured there).
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        converter: StringConverter | None = None,
    ) -> None:
        self._client = client
        self._converter = converter or PydanticStringConverter()

    def build_request(self, unit: RequestUnit[Any]) -> httpx.Request:
        """Translate a RequestUnit into an ``httpx.Request`` (keep-alive connection)."""
        headers = {"Connection": "keep-alive", **unit.headers}
        return self._client.build_request(
            unit.method.value,
            unit.request_path,
            content=unit.request_body,
            headers=headers,
        )

    async def send(
        self, unit: RequestUnit[Any], cancellation: CancellationToken | None = None
    ) -> RequestUnit[Any]:
        unit.validate()

        logger.debug("http.request.start", url=unit.request_path, method=unit.method.value)
        try:
            request = self.build_request(unit)
            response = await guarded(self._client.send(request), cancellation)
        except httpx.TimeoutException as e:
            error = RequestTimeoutError(_describe(e), cause=e)
            return self._fail(unit, HTTPStatus.REQUEST_TIMEOUT, f"Timeout: {error.message}", error)
        except httpx.TransportError as e:
            error = TransportError(_describe(e), cause=e)
            return self._fail(unit, HTTPStatus.SERVICE_UNAVAILABLE, f"TransportError: {error.message}", error)
        except CancellationError as e:
            return self._fail(unit, HTTPStatus.INTERNAL_SERVER_ERROR, f"Cancelled: {e}", e)
        except Exception as e:
            return self._fail(unit, HTTPStatus.INTERNAL_SERVER_ERROR, f"GeneralException: {e}", e)

        self._note_redirect(response)
        return self._process_response(unit, response)

    def _fail(
        self, unit: RequestUnit[Any], status: HTTPStatus, message: str, error: Exception
    ) -> RequestUnit[Any]:
        unit.status_code = int(status)
        unit.record_error(message)
        fields: dict[str, Any] = {"error_type": type(error).__name__}
        if isinstance(error, CourierError):
            error.with_context(url=unit.request_path, method=unit.method.value, http_status=unit.status_code)
            fields = error.to_dict()
            fields.pop("message", None)
            fields.pop("context", None)
        logger.error(
            "http.request.failed",
            url=unit.request_path,
            method=unit.method.value,
            status_code=unit.status_code,
            error=message,
            **fields,
        )
        return unit

    def _note_redirect(self, response: httpx.Response) -> None:
        for previous in response.history:
            if previous.status_code == HTTPStatus.MOVED_PERMANENTLY:
                logger.info(
                    "http.redirected",
                    old_url=str(previous.request.url),
                    new_url=str(response.request.url),
                )

    def _process_response(self, unit: RequestUnit[Any], response: httpx.Response) -> RequestUnit[Any]:
        unit.status_code = response.status_code

        if not response.is_success:
            unit.record_error(f"HTTP {response.status_code}: {response.reason_phrase}")
            logger.warning(
                "http.request.failed",
                url=unit.request_path,
                method=unit.method.value,
                status_code=response.status_code,
            )
            return unit

        if unit.response_type is bytes:
            unit.response = response.content
        elif unit.response_type is str:
            unit.response = response.text
        else:
            try:
                unit.response = self._converter.convert_from_string(response.text, unit.response_type)
            except DecodeError as e:
                unit.record_error(f"DeserializeException: {e}")
                logger.error(
                    "http.decode_failed",
                    url=unit.request_path,
                    status_code=response.status_code,
                    error=str(e),
                )
                return unit

        logger.debug(
            "http.request.completed",
            url=unit.request_path,
            method=unit.method.value,
            status_code=unit.status_code,
        )
        return unit


__all__ = ["Sender", "HttpSender"]
