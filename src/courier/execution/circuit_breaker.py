"""Circuit breaker pattern for fault tolerance.

Prevents cascading failures by failing fast when a downstream service
is experiencing issues.

States:
    CLOSED: Normal operation, requests pass through
    OPEN: Failing fast, requests rejected immediately
    HALF_OPEN: One probe request decides between CLOSED and OPEN

A breaker is owned by exactly one :class:`~courier.http.resilience.ResilientSender`
and shared by every request routed through it. Transitions happen under a
lock so interleaved success/failure reports from concurrent requests never
leave it in a mixed state. There is no global registry:
independent pipelines get independent breakers.

Example:
    >>> from courier.execution.circuit_breaker import CircuitBreaker
    >>>
    >>> breaker = CircuitBreaker(failure_threshold=5, open_duration=30.0)
    >>> result = await breaker.call_async(fetch_status)
"""

from __future__ import annotations

import asyncio
import threading
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypeVar

from courier.core.errors import BreakerOpenError, CancellationError

T = TypeVar("T")


class CircuitState(str, Enum):
    """Circuit breaker states."""

    CLOSED = "closed"        # Normal operation
    OPEN = "open"            # Rejecting requests
    HALF_OPEN = "half_open"  # Probing recovery


@dataclass
class CircuitStats:
    """Statistics for circuit breaker monitoring."""

    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    rejected_requests: int = 0
    state_changes: int = 0

    @property
    def failure_rate(self) -> float:
        """Calculate failure rate as percentage."""
        total = self.successful_requests + self.failed_requests
        if total == 0:
            return 0.0
        return (self.failed_requests / total) * 100


@dataclass
class CircuitBreaker:
    """Three-state circuit breaker.

    Attributes:
        name: Identifier for this circuit (used in log events)
        failure_threshold: Consecutive failures that open the circuit
        open_duration: Seconds to stay open before admitting a probe
        clock: Monotonic time source in seconds
        on_open: Called with the triggering error when the circuit opens
        on_reset: Called when a successful probe closes the circuit
    """

    name: str = "default"
    failure_threshold: int = 5
    open_duration: float = 30.0
    clock: Callable[[], float] = time.monotonic
    on_open: Callable[[BaseException | None], None] | None = None
    on_reset: Callable[[], None] | None = None

    _state: CircuitState = field(default=CircuitState.CLOSED, init=False)
    _consecutive_failures: int = field(default=0, init=False)
    _opened_at: float | None = field(default=None, init=False)
    _probe_in_flight: bool = field(default=False, init=False)
    _lock: threading.RLock = field(default_factory=threading.RLock, init=False)
    _stats: CircuitStats = field(default_factory=CircuitStats, init=False)

    def __post_init__(self) -> None:
        if self.failure_threshold < 1:
            raise ValueError("failure_threshold must be >= 1")
        if self.open_duration < 0:
            raise ValueError("open_duration must be >= 0")

    @property
    def state(self) -> CircuitState:
        """Get current circuit state."""
        with self._lock:
            self._check_state_transition()
            return self._state

    @property
    def consecutive_failures(self) -> int:
        with self._lock:
            return self._consecutive_failures

    @property
    def opened_at(self) -> float | None:
        with self._lock:
            return self._opened_at

    @property
    def stats(self) -> CircuitStats:
        """Get circuit statistics."""
        return self._stats

    def _check_state_transition(self) -> None:
        """Move OPEN to HALF_OPEN once the open window has elapsed."""
        if self._state == CircuitState.OPEN and self._opened_at is not None:
            if self.clock() - self._opened_at >= self.open_duration:
                self._transition_to(CircuitState.HALF_OPEN)

    def _transition_to(self, new_state: CircuitState) -> None:
        self._state = new_state
        self._stats.state_changes += 1

        if new_state == CircuitState.CLOSED:
            self._consecutive_failures = 0
            self._opened_at = None
            self._probe_in_flight = False
        elif new_state == CircuitState.OPEN:
            self._opened_at = self.clock()
            self._probe_in_flight = False
        elif new_state == CircuitState.HALF_OPEN:
            self._probe_in_flight = False

    def allow_request(self) -> bool:
        """Check if a request should be allowed.

        In HALF_OPEN exactly one caller gets ``True`` (the probe); the rest
        are rejected until the probe reports back.
        """
        with self._lock:
            self._check_state_transition()
            self._stats.total_requests += 1

            if self._state == CircuitState.CLOSED:
                return True

            if self._state == CircuitState.HALF_OPEN and not self._probe_in_flight:
                self._probe_in_flight = True
                return True

            self._stats.rejected_requests += 1
            return False

    def record_success(self) -> None:
        """Record a successful request."""
        with self._lock:
            self._stats.successful_requests += 1

            if self._state == CircuitState.HALF_OPEN:
                self._transition_to(CircuitState.CLOSED)
                callback = self.on_reset
            else:
                self._consecutive_failures = 0
                callback = None

        if callback is not None:
            callback()

    def record_failure(self, error: BaseException | None = None) -> None:
        """Record a failed request."""
        opened = False
        with self._lock:
            self._stats.failed_requests += 1

            if self._state == CircuitState.CLOSED:
                self._consecutive_failures += 1
                if self._consecutive_failures >= self.failure_threshold:
                    self._transition_to(CircuitState.OPEN)
                    opened = True

            elif self._state == CircuitState.HALF_OPEN:
                # A failed probe re-opens without counting through CLOSED
                self._transition_to(CircuitState.OPEN)
                opened = True

        if opened and self.on_open is not None:
            self.on_open(error)

    def abandon_probe(self) -> None:
        """Release a HALF_OPEN probe slot whose caller gave up (cancelled)."""
        with self._lock:
            if self._state == CircuitState.HALF_OPEN:
                self._probe_in_flight = False

    def reset(self) -> None:
        """Reset circuit to closed state."""
        with self._lock:
            self._transition_to(CircuitState.CLOSED)

    def force_open(self) -> None:
        """Force circuit to open state (for testing/maintenance)."""
        with self._lock:
            self._transition_to(CircuitState.OPEN)

    def _reject(self) -> BreakerOpenError:
        return BreakerOpenError(f"Circuit '{self.name}' is open, rejecting request")

    async def call_async(
        self, func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any
    ) -> T:
        """Execute an async function through the circuit breaker."""
        if not self.allow_request():
            raise self._reject()

        try:
            result = await func(*args, **kwargs)
        except (CancellationError, asyncio.CancelledError):
            self.abandon_probe()
            raise
        except Exception as e:
            self.record_failure(e)
            raise
        self.record_success()
        return result
