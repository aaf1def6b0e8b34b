"""Tests for CancellationToken and the guarded/pause helpers."""

from __future__ import annotations

import asyncio

import pytest

from courier.core.cancellation import CancellationToken, guarded, pause
from courier.core.errors import CancellationError


class TestToken:
    def test_initial_state(self):
        token = CancellationToken()
        assert token.is_cancelled is False
        assert token.reason is None
        token.raise_if_cancelled()

    def test_cancel_keeps_first_reason(self):
        token = CancellationToken()
        token.cancel("shutdown")
        token.cancel("second")
        assert token.is_cancelled
        assert token.reason == "shutdown"
        with pytest.raises(CancellationError, match="shutdown"):
            token.raise_if_cancelled()

    @pytest.mark.asyncio
    async def test_wait_returns_result(self):
        token = CancellationToken()

        async def work():
            return 42

        assert await token.wait(work()) == 42

    @pytest.mark.asyncio
    async def test_wait_already_cancelled(self):
        token = CancellationToken()
        token.cancel()

        with pytest.raises(CancellationError):
            await token.wait(asyncio.sleep(10))

    @pytest.mark.asyncio
    async def test_wait_interrupted_cancels_work(self):
        token = CancellationToken()
        finished = False

        async def slow():
            nonlocal finished
            await asyncio.sleep(10)
            finished = True

        async def trigger():
            await asyncio.sleep(0.01)
            token.cancel("stop")

        asyncio.create_task(trigger())
        with pytest.raises(CancellationError, match="stop"):
            await token.wait(slow())
        assert finished is False

    @pytest.mark.asyncio
    async def test_cancel_after(self):
        token = CancellationToken()
        token.cancel_after(0.01)
        with pytest.raises(CancellationError):
            await token.sleep(5)
        assert token.reason == "Cancelled after 0.01s"


class TestHelpers:
    @pytest.mark.asyncio
    async def test_guarded_without_token(self):
        async def work():
            return "ok"

        assert await guarded(work(), None) == "ok"

    @pytest.mark.asyncio
    async def test_pause_zero_checks_token(self):
        token = CancellationToken()
        await pause(0, token)
        token.cancel()
        with pytest.raises(CancellationError):
            await pause(0, token)

    @pytest.mark.asyncio
    async def test_pause_interrupted(self):
        token = CancellationToken()
        loop = asyncio.get_running_loop()
        loop.call_later(0.01, token.cancel)
        started = loop.time()
        with pytest.raises(CancellationError):
            await pause(5, token)
        assert loop.time() - started < 1
