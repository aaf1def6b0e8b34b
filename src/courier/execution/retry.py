"""Retry strategies with fixed or exponential backoff.

The resilient sender defaults to :class:`ConstantBackoff` (a fixed pause
between attempts); :class:`ExponentialBackoff` is available for callers who
want growing delays with jitter.

Example:
    >>> from courier.execution.retry import ExponentialBackoff
    >>>
    >>> strategy = ExponentialBackoff(max_retries=5, base_delay=1.0, max_delay=60.0)
    >>> for attempt in range(5):
    ...     delay = strategy.next_delay(attempt)
    ...     print(f"Retry {attempt + 1}: wait {delay:.2f}s")
"""

from __future__ import annotations

import random
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

from courier.core.cancellation import CancellationToken, pause
from courier.core.errors import CancellationError

T = TypeVar("T")


class RetryStrategy(ABC):
    """Abstract base for retry strategies."""

    max_retries: int

    @abstractmethod
    def next_delay(self, attempt: int) -> float:
        """Calculate delay before the next retry.

        Args:
            attempt: Zero-based retry number (0 = first retry)

        Returns:
            Delay in seconds before next attempt
        """
        ...

    @abstractmethod
    def should_retry(self, attempt: int, error: Exception | None = None) -> bool:
        """Determine if another retry should be attempted.

        Args:
            attempt: Number of retries already consumed
            error: The exception that caused the failure
        """
        ...


@dataclass
class ExponentialBackoff(RetryStrategy):
    """Exponential backoff with optional jitter.

    Delay = min(base_delay * (multiplier ** attempt), max_delay) + jitter
    """

    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 60.0
    multiplier: float = 2.0
    jitter: bool = True
    jitter_range: float = 0.25

    def next_delay(self, attempt: int) -> float:
        """Calculate exponential backoff delay."""
        delay = min(
            self.base_delay * (self.multiplier ** attempt),
            self.max_delay,
        )

        if self.jitter:
            jitter_amount = delay * self.jitter_range
            delay += random.uniform(-jitter_amount, jitter_amount)
            delay = max(0, delay)

        return delay

    def should_retry(self, attempt: int, error: Exception | None = None) -> bool:
        return attempt < self.max_retries


@dataclass
class ConstantBackoff(RetryStrategy):
    """Constant delay between retries."""

    max_retries: int = 3
    delay: float = 1.0

    def next_delay(self, attempt: int) -> float:
        return self.delay

    def should_retry(self, attempt: int, error: Exception | None = None) -> bool:
        return attempt < self.max_retries


@dataclass
class NoRetry(RetryStrategy):
    """No retry - fail immediately."""

    max_retries: int = 0

    def next_delay(self, attempt: int) -> float:
        return 0.0

    def should_retry(self, attempt: int, error: Exception | None = None) -> bool:
        return False


@dataclass
class RetryContext:
    """Runs one operation under a retry strategy and counts its retries.

    ``on_retry(retry_number, error, delay)`` is called before each pause.
    Delays go through ``cancellation`` so a cancelled run stops waiting
    immediately. :class:`~courier.core.errors.CancellationError` is never
    retried.

    Example:
        >>> ctx = RetryContext(ConstantBackoff(max_retries=2, delay=0.5))
        >>> result = await ctx.run_async(call_api)
        >>> ctx.retries
        0
    """

    strategy: RetryStrategy
    on_retry: Callable[[int, Exception, float], None] | None = None
    cancellation: CancellationToken | None = None
    retries: int = field(default=0, init=False)
    last_error: Exception | None = field(default=None, init=False)

    async def run_async(self, func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """Execute async function with retry logic.

        Raises:
            Last exception if all retries are exhausted
        """
        while True:
            try:
                return await func(*args, **kwargs)
            except CancellationError:
                raise
            except Exception as e:
                self.last_error = e

                if not self.strategy.should_retry(self.retries, e):
                    raise

                delay = self.strategy.next_delay(self.retries)
                self.retries += 1

                if self.on_retry:
                    self.on_retry(self.retries, e, delay)

                await pause(delay, self.cancellation)


__all__ = [
    "RetryStrategy",
    "ExponentialBackoff",
    "ConstantBackoff",
    "NoRetry",
    "RetryContext",
]
