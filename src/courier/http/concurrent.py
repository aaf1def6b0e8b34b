"""Concurrent HTTP fan-out: one RequestUnit per scheduled task."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from courier.core.cancellation import CancellationToken
from courier.execution.scheduler import ConcurrentProcessor, TaskDescriptor
from courier.http.models import RequestUnit
from courier.http.sender import Sender


@dataclass
class HttpTaskDescriptor(TaskDescriptor):
    """Task descriptor carrying the request it sends and, after the run, its result."""

    request: RequestUnit[Any] = field(default_factory=lambda: RequestUnit("/"))

    def __str__(self) -> str:
        return f"{super().__str__()} Status:{self.request.status_code}"


def request_factory(
    request_path: str,
    *,
    cache_duration_minutes: int = 0,
    response_type: Any = None,
    headers: dict[str, str] | None = None,
) -> Callable[[int], HttpTaskDescriptor]:
    """Task factory that sends the same GET to ``request_path`` once per task.

    The task id becomes the unit's ``iteration`` so results can be told apart.
    """

    def build(task_id: int) -> HttpTaskDescriptor:
        unit: RequestUnit[Any] = RequestUnit(
            request_path,
            headers=dict(headers or {}),
            response_type=response_type,
            cache_duration_minutes=cache_duration_minutes,
            iteration=task_id,
        )
        return HttpTaskDescriptor(task_id=task_id, request=unit)

    return build


class HttpConcurrentProcessor(ConcurrentProcessor[HttpTaskDescriptor]):
    """Sends each task's RequestUnit through ``sender``, K at a time."""

    def __init__(self, task_factory: Callable[[int], HttpTaskDescriptor], sender: Sender) -> None:
        super().__init__(task_factory)
        self._sender = sender

    async def process(
        self, task: HttpTaskDescriptor, cancellation: CancellationToken | None = None
    ) -> HttpTaskDescriptor:
        started = time.perf_counter()
        task.request = await self._sender.send(task.request, cancellation)
        task.duration_ms = (time.perf_counter() - started) * 1000
        return task

    def failed_task(self, task_id: int, error: str) -> HttpTaskDescriptor:
        return HttpTaskDescriptor(task_id=task_id, error=error)


__all__ = ["HttpTaskDescriptor", "HttpConcurrentProcessor", "request_factory"]
