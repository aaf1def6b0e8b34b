"""Tests for ConcurrentProcessor — bounded fan-out over a pulled task sequence."""

from __future__ import annotations

import asyncio

import pytest

from courier.core.cancellation import CancellationToken
from courier.core.errors import CancellationError, ValidationError
from courier.execution.scheduler import ConcurrentProcessor, TaskDescriptor


# ── Helpers ──────────────────────────────────────────────────────────────


async def _short(task: TaskDescriptor, cancellation=None) -> TaskDescriptor:
    await asyncio.sleep(0.005)
    return task


def _processor(process=_short) -> ConcurrentProcessor[TaskDescriptor]:
    return ConcurrentProcessor(TaskDescriptor, process)


# ── TaskDescriptor ───────────────────────────────────────────────────────


class TestTaskDescriptor:
    def test_str(self):
        task = TaskDescriptor(
            task_id=1, task_count=0, duration_ms=42.7, semaphore_permits_at_dispatch=2, semaphore_wait_ns=15
        )
        assert str(task) == "Task:0001 Duration:00042 TaskCount:00 SemaphoreCount:02 SemaphoreWaitTicks:0015"


# ── ConcurrentProcessor ──────────────────────────────────────────────────


class TestRun:
    @pytest.mark.asyncio
    async def test_completeness(self):
        results = await _processor().run(max_task_count=5, max_concurrency=2)
        assert sorted(t.task_id for t in results) == [1, 2, 3, 4, 5]

    @pytest.mark.asyncio
    async def test_concurrency_never_exceeded(self):
        active = 0
        peak = 0

        async def track(task, cancellation=None):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            return task

        processor = _processor(track)
        results = await processor.run(max_task_count=12, max_concurrency=3)

        assert len(results) == 12
        assert peak <= 3
        assert processor.peak_in_flight <= 3
        assert processor.in_flight == 0

    @pytest.mark.asyncio
    async def test_dispatch_order_ascending(self):
        started: list[int] = []

        async def record(task, cancellation=None):
            started.append(task.task_id)
            await asyncio.sleep(0.001 * (6 - task.task_id))
            return task

        await _processor(record).run(max_task_count=5, max_concurrency=5)
        assert started == [1, 2, 3, 4, 5]

    @pytest.mark.asyncio
    async def test_concurrency_one_is_sequential(self):
        order: list[int] = []

        async def record(task, cancellation=None):
            order.append(task.task_id)
            return task

        results = await _processor(record).run(max_task_count=4, max_concurrency=1)
        assert order == [1, 2, 3, 4]
        assert [t.task_id for t in results] == [1, 2, 3, 4]

    @pytest.mark.asyncio
    async def test_zero_tasks(self):
        assert await _processor().run(max_task_count=0, max_concurrency=3) == []

    @pytest.mark.asyncio
    async def test_invalid_concurrency(self):
        with pytest.raises(ValidationError):
            await _processor().run(max_task_count=3, max_concurrency=0)

    @pytest.mark.asyncio
    async def test_diagnostics_recorded(self):
        results = await _processor().run(max_task_count=3, max_concurrency=1)
        by_id = {t.task_id: t for t in results}
        assert [by_id[i].task_count for i in (1, 2, 3)] == [0, 1, 2]
        assert all(t.duration_ms > 0 for t in results)
        assert all(t.semaphore_wait_ns >= 0 for t in results)

    @pytest.mark.asyncio
    async def test_override_process(self):
        class Doubler(ConcurrentProcessor[TaskDescriptor]):
            async def process(self, task, cancellation=None):
                task.duration_ms = task.task_id * 2.0
                return task

        results = await Doubler(TaskDescriptor).run(max_task_count=3, max_concurrency=2)
        assert sorted(t.duration_ms for t in results) == [2.0, 4.0, 6.0]

    @pytest.mark.asyncio
    async def test_missing_process_is_isolated(self):
        results = await ConcurrentProcessor(TaskDescriptor).run(max_task_count=1, max_concurrency=1)
        assert results[0].error.startswith("NotImplementedError")


class TestIsolation:
    @pytest.mark.asyncio
    async def test_failing_task_recorded(self):
        async def maybe_fail(task, cancellation=None):
            if task.task_id == 2:
                raise RuntimeError("boom")
            return task

        results = await _processor(maybe_fail).run(max_task_count=4, max_concurrency=2)
        by_id = {t.task_id: t for t in results}

        assert len(results) == 4
        assert by_id[2].error == "RuntimeError: boom"
        assert all(by_id[i].error is None for i in (1, 3, 4))

    @pytest.mark.asyncio
    async def test_factory_failure_recorded(self):
        def factory(task_id: int) -> TaskDescriptor:
            if task_id == 2:
                raise RuntimeError("factory boom")
            return TaskDescriptor(task_id=task_id)

        processed: list[int] = []

        async def record(task, cancellation=None):
            processed.append(task.task_id)
            return task

        processor = ConcurrentProcessor(factory, record)
        results = await processor.run(max_task_count=3, max_concurrency=1)
        by_id = {t.task_id: t for t in results}

        assert sorted(by_id) == [1, 2, 3]
        assert by_id[2].error == "RuntimeError: factory boom"
        assert processed == [1, 3]
        assert processor.in_flight == 0

    @pytest.mark.asyncio
    async def test_factory_called_once_per_task(self):
        built: list[int] = []

        def factory(task_id: int) -> TaskDescriptor:
            built.append(task_id)
            return TaskDescriptor(task_id=task_id)

        await ConcurrentProcessor(factory, _short).run(max_task_count=4, max_concurrency=2)
        assert built == [1, 2, 3, 4]


class TestCancellation:
    @pytest.mark.asyncio
    async def test_cancel_stops_run(self):
        token = CancellationToken()
        started: list[int] = []

        async def slow(task, cancellation=None):
            started.append(task.task_id)
            await asyncio.sleep(0.05)
            return task

        asyncio.get_running_loop().call_later(0.02, token.cancel, "stop")
        with pytest.raises(CancellationError, match="stop"):
            await _processor(slow).run(max_task_count=100, max_concurrency=2, cancellation=token)

        assert len(started) < 100
        await asyncio.sleep(0.1)  # let dispatched workers drain

    @pytest.mark.asyncio
    async def test_pre_cancelled(self):
        token = CancellationToken()
        token.cancel()
        with pytest.raises(CancellationError):
            await _processor().run(max_task_count=3, max_concurrency=1, cancellation=token)
