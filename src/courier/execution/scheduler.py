"""Concurrent Processor — semaphore-bounded fan-out over a pulled task sequence.

WHY
───
Status polling, bulk fetches and load probes need to issue many requests
while keeping at most K of them in flight. Unlike a fixed batch, the work
list is not known up front: each task descriptor produces the next one
(``get_next_task``), so sequences can be open-ended or stop on a condition
without being materialised.

ARCHITECTURE
────────────
::

    ConcurrentProcessor(task_factory, process)
      └── .run(max_task_count, max_concurrency, cancellation)
            1. Semaphore(max_concurrency)
            2. seed task_factory(1)
            3. loop: acquire ─▶ dispatch worker ─▶ pull next ─▶ join any
            4. join the rest

    Dispatch order:   ascending task_id
    Result order:     completion order (non-deterministic)

Worker exceptions are isolated: a failing ``process`` call is recorded on
that task's ``error`` field and the run continues.

Example::

    async def probe(task: TaskDescriptor, cancellation) -> TaskDescriptor:
        await asyncio.sleep(0.01)
        return task

    processor = ConcurrentProcessor(TaskDescriptor, probe)
    results = await processor.run(max_task_count=5, max_concurrency=2)
    sorted(t.task_id for t in results)  # [1, 2, 3, 4, 5]
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Generic, TypeVar, cast

from courier.core.cancellation import CancellationToken, guarded
from courier.core.errors import CancellationError, ValidationError
from courier.core.logging import get_logger

logger = get_logger(__name__)


@dataclass
class TaskDescriptor:
    """One unit of scheduled work plus its dispatch diagnostics."""

    task_id: int
    task_count: int = 0
    duration_ms: float = 0.0
    semaphore_permits_at_dispatch: int = 0
    semaphore_wait_ns: int = 0
    error: str | None = None

    def __str__(self) -> str:
        return (
            f"Task:{self.task_id:04d} Duration:{int(self.duration_ms):05d} "
            f"TaskCount:{self.task_count:02d} SemaphoreCount:{self.semaphore_permits_at_dispatch:02d} "
            f"SemaphoreWaitTicks:{self.semaphore_wait_ns:04d}"
        )


T = TypeVar("T", bound=TaskDescriptor)

ProcessFn = Callable[[T, CancellationToken | None], Awaitable[T]]


class ConcurrentProcessor(Generic[T]):
    """Runs ``process`` over a dynamically produced task sequence.

    Parameters
    ----------
    task_factory : Callable[[int], T]
        Builds a fresh descriptor for a task id. Called once per task id
        as the sequence is pulled; if it raises, :meth:`failed_task` stands
        in and the run continues.
    process : ProcessFn | None
        Async unit of work. Subclasses may override :meth:`process` instead.
    """

    def __init__(self, task_factory: Callable[[int], T], process: ProcessFn | None = None) -> None:
        self._task_factory = task_factory
        self._process = process
        self._max_task_count = 0
        self._max_concurrency = 1
        self._in_flight = 0
        self._peak_in_flight = 0

    @property
    def max_task_count(self) -> int:
        return self._max_task_count

    @property
    def max_concurrency(self) -> int:
        return self._max_concurrency

    @property
    def in_flight(self) -> int:
        """Permits currently acquired and not yet released."""
        return self._in_flight

    @property
    def peak_in_flight(self) -> int:
        """Highest number of simultaneously held permits seen by the last run."""
        return self._peak_in_flight

    # ── Extension points ─────────────────────────────────────────────

    async def process(self, task: T, cancellation: CancellationToken | None = None) -> T:
        """Unit of work for one task. Defaults to the ``process`` callable."""
        if self._process is None:
            raise NotImplementedError("Pass process= or override ConcurrentProcessor.process")
        return await self._process(task, cancellation)

    def get_next_task(self, task: T) -> T | None:
        """Pull function: the descriptor after ``task``, or ``None`` when done."""
        if task.task_id < self._max_task_count:
            return self._build(task.task_id + 1)
        return None

    def failed_task(self, task_id: int, error: str) -> T:
        """Placeholder descriptor for a task whose factory raised."""
        return cast(T, TaskDescriptor(task_id=task_id, error=error))

    # ── Internals ────────────────────────────────────────────────────

    async def _acquire(
        self, semaphore: asyncio.Semaphore, cancellation: CancellationToken | None
    ) -> int:
        """Acquire a permit and return the wait in nanoseconds."""
        started = time.perf_counter_ns()
        await guarded(semaphore.acquire(), cancellation)
        self._in_flight += 1
        self._peak_in_flight = max(self._peak_in_flight, self._in_flight)
        return time.perf_counter_ns() - started

    def _release(self, semaphore: asyncio.Semaphore) -> None:
        self._in_flight -= 1
        semaphore.release()

    def _build(self, task_id: int) -> T:
        try:
            return self._task_factory(task_id)
        except Exception as e:
            error = f"{type(e).__name__}: {e}"
            logger.warning("scheduler.task_failed", task_id=task_id, error=error, stage="factory")
            return self.failed_task(task_id, error)

    async def _manage(
        self,
        task: T,
        task_count: int,
        wait_ns: int,
        semaphore: asyncio.Semaphore,
        cancellation: CancellationToken | None,
    ) -> T:
        started = time.perf_counter()
        result = task
        try:
            task.task_count = task_count
            task.semaphore_permits_at_dispatch = self._max_concurrency - self._in_flight
            task.semaphore_wait_ns = wait_ns
            # factory failures arrive with error already set
            if task.error is None:
                result = await self.process(task, cancellation)
        except Exception as e:
            task.error = f"{type(e).__name__}: {e}"
            logger.warning(
                "scheduler.task_failed",
                task_id=task.task_id,
                error=task.error,
            )
            result = task
        finally:
            self._release(semaphore)
        if not result.duration_ms:
            result.duration_ms = (time.perf_counter() - started) * 1000
        return result

    # ── Execution ────────────────────────────────────────────────────

    async def run(
        self,
        max_task_count: int,
        max_concurrency: int,
        cancellation: CancellationToken | None = None,
    ) -> list[T]:
        """Process up to ``max_task_count`` tasks, ``max_concurrency`` at a time.

        Returns:
            One descriptor per dispatched task, in completion order.

        Raises:
            ValidationError: If ``max_concurrency < 1``.
            CancellationError: If ``cancellation`` fires while waiting for a
                permit or for a worker. Dispatched workers keep running.
        """
        if max_concurrency < 1:
            raise ValidationError(
                "max_concurrency must be at least 1",
                field="max_concurrency",
                value=max_concurrency,
            )

        self._max_task_count = max_task_count
        self._max_concurrency = max_concurrency
        self._in_flight = 0
        self._peak_in_flight = 0

        semaphore = asyncio.Semaphore(max_concurrency)
        pending: set[asyncio.Task[T]] = set()
        results: list[T] = []
        dispatched = 0

        logger.info(
            "scheduler.start",
            max_task_count=max_task_count,
            max_concurrency=max_concurrency,
        )

        task: T | None = self._build(1) if max_task_count >= 1 else None
        try:
            while task is not None:
                wait_ns = await self._acquire(semaphore, cancellation)
                worker = asyncio.create_task(
                    self._manage(task, dispatched, wait_ns, semaphore, cancellation)
                )
                pending.add(worker)
                dispatched += 1

                task = self.get_next_task(task)

                if len(pending) >= max_concurrency:
                    done, pending = await guarded(
                        asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED),
                        cancellation,
                    )
                    results.extend(t.result() for t in done)

            if pending:
                # asyncio.wait rather than gather: cancelling the join must
                # not cancel the workers themselves
                done, pending = await guarded(asyncio.wait(pending), cancellation)
                results.extend(t.result() for t in done)
        except CancellationError:
            logger.warning(
                "scheduler.cancelled",
                dispatched=dispatched,
                collected=len(results),
                in_flight=len(pending),
            )
            raise

        logger.info(
            "scheduler.complete",
            dispatched=dispatched,
            collected=len(results),
            peak_in_flight=self._peak_in_flight,
        )
        return results


__all__ = ["ConcurrentProcessor", "TaskDescriptor"]
