"""Tests for retry strategies and RetryContext."""

from __future__ import annotations

import pytest

from courier.core.cancellation import CancellationToken
from courier.core.errors import CancellationError
from courier.execution.retry import (
    ConstantBackoff,
    ExponentialBackoff,
    NoRetry,
    RetryContext,
)


class TestExponentialBackoff:
    """Tests for ExponentialBackoff strategy."""

    def test_default_configuration(self):
        strategy = ExponentialBackoff()
        assert strategy.max_retries == 3
        assert strategy.base_delay == 1.0
        assert strategy.max_delay == 60.0
        assert strategy.multiplier == 2.0
        assert strategy.jitter is True

    def test_delay_calculation_no_jitter(self):
        strategy = ExponentialBackoff(base_delay=1.0, multiplier=2.0, jitter=False)
        assert strategy.next_delay(0) == 1.0
        assert strategy.next_delay(1) == 2.0
        assert strategy.next_delay(2) == 4.0

    def test_delay_capped(self):
        strategy = ExponentialBackoff(base_delay=1.0, max_delay=5.0, jitter=False)
        assert strategy.next_delay(10) == 5.0

    def test_jitter_within_range(self):
        strategy = ExponentialBackoff(base_delay=4.0, jitter=True, jitter_range=0.25)
        for _ in range(50):
            assert 3.0 <= strategy.next_delay(0) <= 5.0

    def test_should_retry_limit(self):
        strategy = ExponentialBackoff(max_retries=3)
        assert strategy.should_retry(2, ValueError()) is True
        assert strategy.should_retry(3, ValueError()) is False


class TestConstantAndNoRetry:
    def test_constant(self):
        strategy = ConstantBackoff(max_retries=2, delay=0.5)
        assert strategy.next_delay(0) == 0.5
        assert strategy.next_delay(5) == 0.5
        assert strategy.should_retry(1) is True
        assert strategy.should_retry(2) is False

    def test_no_retry(self):
        strategy = NoRetry()
        assert strategy.should_retry(0) is False
        assert strategy.next_delay(0) == 0.0


class TestRetryContext:
    @pytest.mark.asyncio
    async def test_success_first_try(self):
        ctx = RetryContext(ConstantBackoff(max_retries=2, delay=0))

        async def ok():
            return "done"

        assert await ctx.run_async(ok) == "done"
        assert ctx.retries == 0

    @pytest.mark.asyncio
    async def test_recovers_after_failures(self):
        calls = []
        retried = []
        ctx = RetryContext(
            ConstantBackoff(max_retries=3, delay=0),
            on_retry=lambda n, e, d: retried.append((n, str(e), d)),
        )

        async def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise RuntimeError(f"fail {len(calls)}")
            return "ok"

        assert await ctx.run_async(flaky) == "ok"
        assert ctx.retries == 2
        assert retried == [(1, "fail 1", 0), (2, "fail 2", 0)]

    @pytest.mark.asyncio
    async def test_exhausted_reraises_last(self):
        ctx = RetryContext(ConstantBackoff(max_retries=2, delay=0))
        calls = []

        async def always():
            calls.append(1)
            raise RuntimeError(f"fail {len(calls)}")

        with pytest.raises(RuntimeError, match="fail 3"):
            await ctx.run_async(always)
        assert len(calls) == 3
        assert ctx.retries == 2
        assert str(ctx.last_error) == "fail 3"

    @pytest.mark.asyncio
    async def test_cancellation_not_retried(self):
        ctx = RetryContext(ConstantBackoff(max_retries=5, delay=0))
        calls = []

        async def cancelled():
            calls.append(1)
            raise CancellationError()

        with pytest.raises(CancellationError):
            await ctx.run_async(cancelled)
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_cancelled_during_delay(self):
        token = CancellationToken()
        ctx = RetryContext(
            ConstantBackoff(max_retries=5, delay=30),
            on_retry=lambda *_: token.cancel("stop"),
            cancellation=token,
        )

        async def fail():
            raise RuntimeError("down")

        with pytest.raises(CancellationError, match="stop"):
            await ctx.run_async(fail)
        assert ctx.retries == 1
