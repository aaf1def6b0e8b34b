"""
Courier - resilient HTTP request pipeline and bounded-concurrency scheduler.

- courier.core: errors, logging, cancellation, cache, settings
- courier.execution: circuit breaker, retry strategies, concurrent processor
- courier.http: RequestUnit, senders and decorators, pipeline assembly
"""

__version__ = "0.1.0"

from courier.core import *  # noqa
from courier.execution import *  # noqa
from courier.http import *  # noqa
