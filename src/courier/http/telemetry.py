"""Telemetry decorator: timing and completion stamp for every unit."""

from __future__ import annotations

import time
from datetime import UTC, datetime
from http import HTTPStatus
from typing import Any

from courier.core.cancellation import CancellationToken
from courier.core.errors import ValidationError
from courier.core.logging import get_logger
from courier.http.models import RequestUnit
from courier.http.sender import Sender

logger = get_logger(__name__)


class TelemetrySender:
    """Outermost stage: measures wall-clock time around the inner sender.

    ``elapsed_ms`` and ``completed_at`` are always set, even when the inner
    sender raises. A raised error (other than validation) is recorded on the
    unit as ``"telemetry: <Type>: <message>"`` with status 500 rather than
    propagated. Successful units are logged at info, failed ones at warning.
    """

    def __init__(self, inner: Sender) -> None:
        self._inner = inner

    async def send(
        self, unit: RequestUnit[Any], cancellation: CancellationToken | None = None
    ) -> RequestUnit[Any]:
        started = time.perf_counter()
        result = unit
        try:
            result = await self._inner.send(unit, cancellation)
        except ValidationError:
            raise
        except Exception as e:
            if unit.status_code == 0 or unit.succeeded:
                unit.status_code = int(HTTPStatus.INTERNAL_SERVER_ERROR)
            unit.response = None
            unit.record_error(f"telemetry: {type(e).__name__}: {e}")
            logger.error(
                "http.request.failed",
                url=unit.request_path,
                error=str(e),
                error_type=type(e).__name__,
            )
        finally:
            result.elapsed_ms = (time.perf_counter() - started) * 1000
            result.completed_at = datetime.now(UTC)

        log = logger.info if result.succeeded else logger.warning
        log(
            "http.request.completed",
            url=result.request_path,
            iteration=result.iteration,
            status_code=result.status_code,
            elapsed_ms=round(result.elapsed_ms, 2),
            retries=result.retries,
            errors=len(result.errors),
        )
        return result


__all__ = ["TelemetrySender"]
