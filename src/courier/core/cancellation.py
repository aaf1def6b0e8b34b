"""Cooperative cancellation for pipeline and scheduler awaits.

One :class:`CancellationToken` is threaded through every suspension point of
a run: semaphore acquisition, transport I/O, retry delays and the
scheduler's "any worker finished" join. Once :meth:`CancellationToken.cancel`
is called, pending and future awaits guarded by the token fail fast with
:class:`~courier.core.errors.CancellationError`.

Example::

    token = CancellationToken()
    token.cancel_after(30.0)
    results = await processor.run(100, 8, cancellation=token)
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

from courier.core.errors import CancellationError
from courier.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class CancellationToken:
    """Cancellation signal shared by every await of one run."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: str | None = None
        self._timer: asyncio.TimerHandle | None = None

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    def cancel(self, reason: str = "Operation cancelled") -> None:
        """Trigger the signal. Repeated calls keep the first reason."""
        if self._event.is_set():
            return
        self._reason = reason
        self._event.set()
        logger.info("cancellation.triggered", reason=reason)

    def cancel_after(self, delay: float) -> None:
        """Cancel automatically after ``delay`` seconds on the running loop."""
        if self._timer is not None:
            self._timer.cancel()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(delay, self.cancel, f"Cancelled after {delay}s")

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise CancellationError(self._reason or "Operation cancelled")

    async def wait(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable`` unless the token fires first.

        Raises:
            CancellationError: If the token is (or becomes) cancelled before
                the awaitable completes. The awaitable is cancelled.
        """
        if self._event.is_set():
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise CancellationError(self._reason or "Operation cancelled")
        work = asyncio.ensure_future(awaitable)
        signal = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait(
                {work, signal}, return_when=asyncio.FIRST_COMPLETED
            )
        except asyncio.CancelledError:
            work.cancel()
            signal.cancel()
            raise

        if work in done:
            signal.cancel()
            return work.result()

        work.cancel()
        raise CancellationError(self._reason or "Operation cancelled")

    async def sleep(self, delay: float) -> None:
        """Sleep ``delay`` seconds, waking early with CancellationError."""
        await self.wait(asyncio.sleep(delay))


async def guarded(awaitable: Awaitable[T], cancellation: CancellationToken | None) -> T:
    """Await through ``cancellation`` when one is supplied."""
    if cancellation is None:
        return await awaitable
    return await cancellation.wait(awaitable)


async def pause(delay: float, cancellation: CancellationToken | None = None) -> None:
    """Cancellation-aware ``asyncio.sleep``."""
    if delay <= 0:
        if cancellation is not None:
            cancellation.raise_if_cancelled()
        return
    await guarded(asyncio.sleep(delay), cancellation)


__all__ = ["CancellationToken", "guarded", "pause"]
