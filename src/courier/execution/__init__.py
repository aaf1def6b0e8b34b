"""
Execution primitives: circuit breaker, retry strategies and the
bounded-concurrency task scheduler.
"""

from courier.execution.circuit_breaker import CircuitBreaker, CircuitState, CircuitStats
from courier.execution.retry import (
    ConstantBackoff,
    ExponentialBackoff,
    NoRetry,
    RetryContext,
    RetryStrategy,
)
from courier.execution.scheduler import ConcurrentProcessor, TaskDescriptor

__all__ = [
    "CircuitBreaker",
    "CircuitState",
    "CircuitStats",
    "ConcurrentProcessor",
    "ConstantBackoff",
    "ExponentialBackoff",
    "NoRetry",
    "RetryContext",
    "RetryStrategy",
    "TaskDescriptor",
]
