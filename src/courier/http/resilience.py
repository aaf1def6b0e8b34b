"""Resilience decorator: retry-with-backoff inside a circuit breaker.

Composition per call::

    breaker.call_async(                     # outer: one outcome per call
        retry.run_async(                    # inner: up to N+1 attempts
            inner_sender.send(fresh copy)   # attempt fails if unit did not succeed
        )
    )

An attempt counts as failed when the inner sender raises or returns a unit
that did not succeed (no 2xx response). Each failed attempt with retries
left appends ``"retry <n>: <message>"`` to the unit's errors; once retries
run out the failure is reported to the breaker. While the breaker is open
calls are short-circuited without touching the inner sender. An attempt
that fails after the caller cancelled is neither retried nor reported to
the breaker; a cancelled half-open probe releases its slot.

No exception escapes :meth:`ResilientSender.send` except
:class:`~courier.core.errors.ValidationError`.
"""

from __future__ import annotations

from dataclasses import dataclass
from http import HTTPStatus
from typing import Any

from courier.core.cancellation import CancellationToken
from courier.core.errors import (
    BreakerOpenError,
    CancellationError,
    CourierError,
    ValidationError,
)
from courier.core.logging import get_logger
from courier.execution.circuit_breaker import CircuitBreaker
from courier.execution.retry import ConstantBackoff, RetryContext, RetryStrategy
from courier.http.models import RequestUnit
from courier.http.sender import Sender

logger = get_logger(__name__)


@dataclass
class ResilienceOptions:
    """Retry and breaker policy for one ResilientSender.

    Attributes:
        max_retry_attempts: Retries after the first attempt (0 = no retry)
        retry_delay: Fixed pause between attempts, in seconds
        failure_threshold: Consecutive failed calls that open the breaker
        open_duration: Seconds the breaker stays open before a probe
        retry_strategy: Overrides the fixed-delay strategy when set
    """

    max_retry_attempts: int = 3
    retry_delay: float = 1.0
    failure_threshold: int = 5
    open_duration: float = 30.0
    retry_strategy: RetryStrategy | None = None

    def __post_init__(self) -> None:
        if self.max_retry_attempts < 0:
            raise ValueError("max_retry_attempts must be >= 0")
        if self.retry_delay < 0:
            raise ValueError("retry_delay must be >= 0")

    def strategy(self) -> RetryStrategy:
        if self.retry_strategy is not None:
            return self.retry_strategy
        return ConstantBackoff(max_retries=self.max_retry_attempts, delay=self.retry_delay)


class AttemptFailedError(CourierError):
    """One attempt returned an unsuccessful unit."""

    default_retryable = True

    def __init__(self, unit: RequestUnit[Any]):
        message = unit.errors[-1] if unit.errors else f"HTTP {unit.status_code}"
        super().__init__(message)
        self.unit = unit


class AttemptCancelledError(CancellationError):
    """An attempt came back unsuccessful after the caller cancelled.

    Being a :class:`~courier.core.errors.CancellationError`, it is neither
    retried nor counted against the breaker.
    """

    def __init__(self, unit: RequestUnit[Any], reason: str | None = None):
        super().__init__(reason or "Operation cancelled")
        self.unit = unit


class ResilientSender:
    """Wraps a sender with retry-then-circuit-breaker policies.

    The breaker is created here and owned by this instance; every request
    routed through the same ResilientSender shares it.
    """

    def __init__(
        self,
        inner: Sender,
        options: ResilienceOptions | None = None,
        *,
        breaker: CircuitBreaker | None = None,
        name: str = "http",
    ) -> None:
        self._inner = inner
        self._options = options or ResilienceOptions()
        self._breaker = breaker or CircuitBreaker(
            name=name,
            failure_threshold=self._options.failure_threshold,
            open_duration=self._options.open_duration,
        )
        self._breaker.on_open = self._on_breaker_open
        self._breaker.on_reset = self._on_breaker_reset

    @property
    def breaker(self) -> CircuitBreaker:
        return self._breaker

    @property
    def options(self) -> ResilienceOptions:
        return self._options

    def _on_breaker_open(self, error: BaseException | None) -> None:
        logger.warning(
            "breaker.opened",
            breaker=self._breaker.name,
            open_duration=self._breaker.open_duration,
            error=str(error) if error else None,
        )

    def _on_breaker_reset(self) -> None:
        logger.info("breaker.reset", breaker=self._breaker.name)

    async def send(
        self, unit: RequestUnit[Any], cancellation: CancellationToken | None = None
    ) -> RequestUnit[Any]:
        unit.validate()

        retry_log: list[str] = []
        last: RequestUnit[Any] | None = None

        def on_retry(retry_number: int, error: Exception, delay: float) -> None:
            retry_log.append(f"retry {retry_number}: {error}")
            logger.info(
                "retry.attempt",
                url=unit.request_path,
                retry=retry_number,
                delay=delay,
                error=str(error),
            )

        async def attempt() -> RequestUnit[Any]:
            nonlocal last
            candidate = unit.fresh_attempt()
            last = candidate
            result = await self._inner.send(candidate, cancellation)
            last = result
            if not result.succeeded:
                if cancellation is not None and cancellation.is_cancelled:
                    raise AttemptCancelledError(result, cancellation.reason)
                raise AttemptFailedError(result)
            return result

        retry = RetryContext(self._options.strategy(), on_retry=on_retry, cancellation=cancellation)

        try:
            result = await self._breaker.call_async(retry.run_async, attempt)
        except ValidationError:
            raise
        except AttemptFailedError as e:
            result = e.unit
        except AttemptCancelledError as e:
            logger.info("http.request.cancelled", url=unit.request_path, reason=e.message)
            result = e.unit
        except BreakerOpenError as e:
            logger.warning("breaker.rejected", breaker=self._breaker.name, url=unit.request_path)
            result = _synthesize(unit.fresh_attempt(), HTTPStatus.SERVICE_UNAVAILABLE, f"BreakerOpenError: {e}")
        except CancellationError as e:
            result = _synthesize(last or unit.fresh_attempt(), HTTPStatus.INTERNAL_SERVER_ERROR, f"Cancelled: {e}")
        except Exception as e:
            logger.error(
                "http.request.failed",
                url=unit.request_path,
                error=str(e),
                error_type=type(e).__name__,
            )
            result = _synthesize(
                last or unit.fresh_attempt(),
                HTTPStatus.INTERNAL_SERVER_ERROR,
                f"ResilienceException: {type(e).__name__}: {e}",
            )

        # errors: caller's entries, then retry log, then the final attempt's own
        final_attempt_errors = result.errors[len(unit.errors):]
        result.errors = list(unit.errors) + retry_log + final_attempt_errors
        result.retries = retry.retries
        return result


def _synthesize(result: RequestUnit[Any], status: HTTPStatus, message: str) -> RequestUnit[Any]:
    if result.status_code == 0 or result.succeeded:
        result.status_code = int(status)
    result.response = None
    result.record_error(message)
    return result


__all__ = ["ResilienceOptions", "ResilientSender", "AttemptFailedError", "AttemptCancelledError"]
