"""
Unit tests for the retry executor.

Delays are checked against a fake clock: the executor's sleep only advances
time, so the schedule is exact.
"""

import asyncio

import pytest

from chat_aggregator.errors import AgentError, ErrorKind
from chat_aggregator.retry import RetryExecutor, RetryExhaustedError, RetryPolicy


class FlakyOperation:
    """Fails with the scripted errors, then returns a value."""

    def __init__(self, errors, value="ok"):
        self.errors = list(errors)
        self.value = value
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.value


class TestRetryPolicy:
    def test_defaults(self):
        policy = RetryPolicy()
        assert policy.max_attempts == 4
        assert policy.base_delay_ms == 1000
        assert policy.backoff_factor == 1.5
        assert policy.max_delay_ms == 10000

    def test_delay_schedule(self):
        policy = RetryPolicy(base_delay_ms=100, backoff_factor=2, max_delay_ms=1000)
        assert [policy.delay_for(n) for n in range(6)] == [0, 100, 200, 400, 800, 1000]

    def test_rejects_zero_attempts(self):
        with pytest.raises(ValueError):
            RetryPolicy(max_attempts=0)


class TestRetryExecutor:
    """Attempt counting, stop conditions and backoff."""

    @pytest.mark.asyncio
    async def test_exhausts_after_max_attempts(self, clock):
        policy = RetryPolicy(max_attempts=3, base_delay_ms=100, backoff_factor=2, max_delay_ms=1000)
        final = RuntimeError("connection refused #3")
        operation = FlakyOperation(
            [RuntimeError("connection refused #1"), RuntimeError("connection refused #2"), final]
        )

        with pytest.raises(RetryExhaustedError) as exc_info:
            await RetryExecutor(sleep=clock.sleep).run(operation, policy)

        assert operation.calls == 3
        assert exc_info.value.attempts == 3
        assert exc_info.value.retry_count == 2
        assert exc_info.value.delays_ms == [0, 100, 200]
        assert exc_info.value.last_error is final
        assert exc_info.value.__cause__ is final
        assert clock.sleeps == [0.1, 0.2]

    @pytest.mark.asyncio
    async def test_first_attempt_success(self, clock):
        operation = FlakyOperation([])

        result = await RetryExecutor(sleep=clock.sleep).run(operation)

        assert result.value == "ok"
        assert result.attempts == 1
        assert result.retry_count == 0
        assert clock.sleeps == []

    @pytest.mark.asyncio
    async def test_succeeds_after_retries(self, clock):
        policy = RetryPolicy(max_attempts=4, base_delay_ms=100, backoff_factor=1.5)
        operation = FlakyOperation([RuntimeError("net::ERR_FAILED")] * 2, value="4")

        result = await RetryExecutor(sleep=clock.sleep).run(operation, policy)

        assert result.value == "4"
        assert result.retry_count == 2
        assert result.delays_ms == [0, 100, 150]

    @pytest.mark.asyncio
    async def test_stops_when_predicate_rejects(self, clock):
        """A non-retryable error ends the run even with attempts left."""
        operation = FlakyOperation(
            [
                RuntimeError("connection refused"),
                AgentError(ErrorKind.SESSION_INVALID, "Session expired, please log in"),
                RuntimeError("never reached"),
            ]
        )

        with pytest.raises(RetryExhaustedError) as exc_info:
            await RetryExecutor(sleep=clock.sleep).run(
                operation, RetryPolicy(max_attempts=5, base_delay_ms=100)
            )

        assert operation.calls == 2
        assert exc_info.value.attempts == 2
        assert exc_info.value.last_error.kind is ErrorKind.SESSION_INVALID

    @pytest.mark.asyncio
    async def test_custom_predicate(self, clock):
        operation = FlakyOperation([KeyError("a"), KeyError("b")])
        policy = RetryPolicy(max_attempts=3, base_delay_ms=0, retry_predicate=lambda e: False)

        with pytest.raises(RetryExhaustedError):
            await RetryExecutor(sleep=clock.sleep).run(operation, policy)

        assert operation.calls == 1

    @pytest.mark.asyncio
    async def test_delay_is_capped(self, clock):
        policy = RetryPolicy(max_attempts=5, base_delay_ms=400, backoff_factor=3, max_delay_ms=1000)
        operation = FlakyOperation([RuntimeError("timeout")] * 4)

        result = await RetryExecutor(sleep=clock.sleep).run(operation, policy)

        assert result.delays_ms == [0, 400, 1000, 1000, 1000]
        assert clock.now == pytest.approx(3.4)

    @pytest.mark.asyncio
    async def test_cancellation_is_not_retried(self, clock):
        async def cancelled():
            raise asyncio.CancelledError()

        with pytest.raises(asyncio.CancelledError):
            await RetryExecutor(sleep=clock.sleep).run(cancelled)

        assert clock.sleeps == []

    @pytest.mark.asyncio
    async def test_executor_default_policy(self, clock):
        executor = RetryExecutor(RetryPolicy(max_attempts=2, base_delay_ms=50), sleep=clock.sleep)
        operation = FlakyOperation([RuntimeError("timeout")] * 3)

        with pytest.raises(RetryExhaustedError):
            await executor.run(operation)

        assert operation.calls == 2
        assert clock.sleeps == [0.05]
