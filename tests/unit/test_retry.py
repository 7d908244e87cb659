# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Tests for RetryExecutor: attempt cap, classification, and backoff delays."""

from __future__ import annotations

import asyncio
import logging
import random

import pytest

from subkit.core.config import Settings
from subkit.core.constants import ErrorCode
from subkit.resilience.errors import (
    ErrorKind,
    RetryExhaustedError,
    TerminalClientError,
    TransientNetworkError,
    UnsupportedOperationError,
)
from subkit.resilience.retry import (
    OperationResult,
    RetryContext,
    RetryExecutor,
    RetryPolicy,
    execute_with_retry,
)


class CountingOperation:
    """Async operation that raises the queued errors in order, then succeeds."""

    def __init__(self, *errors: Exception, result: object = "ok") -> None:
        self.errors = list(errors)
        self.result = result
        self.calls = 0

    async def __call__(self) -> object:
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.result


class AlwaysFailing:
    def __init__(self, error: Exception) -> None:
        self.error = error
        self.calls = 0

    async def __call__(self) -> object:
        self.calls += 1
        raise self.error


# ---------------------------------------------------------------------------
# RetryPolicy
# ---------------------------------------------------------------------------


class TestRetryPolicy:
    def test_defaults(self) -> None:
        policy = RetryPolicy()
        assert policy.max_attempts == 3
        assert policy.base_delay == 1.0
        assert policy.max_delay == 30.0
        assert policy.jitter_ratio == 0.1

    def test_rejects_zero_attempts(self) -> None:
        with pytest.raises(ValueError):
            RetryPolicy(max_attempts=0)

    @pytest.mark.parametrize(("attempt", "base"), [(1, 1.0), (2, 2.0), (3, 4.0), (4, 8.0)])
    def test_exponential_with_bounded_jitter(self, attempt: int, base: float) -> None:
        policy = RetryPolicy()
        rng = random.Random(1)
        for _ in range(50):
            delay = policy.compute_delay(attempt, TransientNetworkError("x"), rng)
            assert base <= delay <= base * 1.1

    def test_no_jitter(self) -> None:
        policy = RetryPolicy(jitter_ratio=0.0)
        assert policy.compute_delay(3, TransientNetworkError("x")) == 4.0

    def test_capped_at_max_delay(self) -> None:
        policy = RetryPolicy(max_delay=30.0)
        assert policy.compute_delay(10, TransientNetworkError("x")) == 30.0

    def test_retry_after_used_verbatim(self) -> None:
        policy = RetryPolicy()
        error = TransientNetworkError("rate limited", status_code=429, retry_after=2)
        assert policy.compute_delay(1, error) == 2.0
        assert policy.compute_delay(3, error) == 2.0

    def test_from_settings(self) -> None:
        settings = Settings(
            retry_max_attempts=5,
            retry_base_delay=0.5,
            retry_max_delay=10,
            retry_jitter_ratio=0.2,
        )
        assert RetryPolicy.from_settings(settings) == RetryPolicy(5, 0.5, 10.0, 0.2)


class TestRetryContext:
    def test_tracks_failures(self) -> None:
        ctx = RetryContext(max_attempts=2)
        assert ctx.attempt == 1
        assert ctx.can_retry
        err = TransientNetworkError("x")
        ctx.record_failure(err)
        assert ctx.last_error is err
        ctx.attempt += 1
        assert not ctx.can_retry


# ---------------------------------------------------------------------------
# execute_with_retry
# ---------------------------------------------------------------------------


class TestExecuteWithRetry:
    async def test_success_returns_immediately(
        self, retry_executor: RetryExecutor, recording_sleep
    ) -> None:
        op = CountingOperation(result={"id": "c1"})

        result = await retry_executor.execute_with_retry(op)

        assert result.success
        assert result.data == {"id": "c1"}
        assert result.attempts == 1
        assert op.calls == 1
        assert recording_sleep.delays == []

    async def test_recovers_after_transient_failures(
        self, retry_executor: RetryExecutor, recording_sleep
    ) -> None:
        op = CountingOperation(
            TransientNetworkError("boom", status_code=502),
            TransientNetworkError("boom", status_code=503),
        )

        result = await retry_executor.execute_with_retry(op)

        assert result.success
        assert result.attempts == 3
        assert op.calls == 3
        assert len(recording_sleep.delays) == 2
        assert 1.0 <= recording_sleep.delays[0] <= 1.1
        assert 2.0 <= recording_sleep.delays[1] <= 2.2

    async def test_gives_up_after_max_attempts(
        self, retry_executor: RetryExecutor, recording_sleep
    ) -> None:
        op = AlwaysFailing(TransientNetworkError("Service Unavailable", status_code=503))

        result = await retry_executor.execute_with_retry(op)

        assert op.calls == 3
        assert not result.success
        assert result.error_code == ErrorCode.RETRY_EXHAUSTED
        assert result.retries_exhausted
        assert result.http_status == 503
        assert result.attempts == 3
        assert result.error == "Service Unavailable"
        # No wait after the final attempt
        assert len(recording_sleep.delays) == 2

    async def test_terminal_error_is_not_retried(
        self, retry_executor: RetryExecutor, recording_sleep
    ) -> None:
        op = AlwaysFailing(TerminalClientError("Invalid code", status_code=400))

        result = await retry_executor.execute_with_retry(op)

        assert op.calls == 1
        assert not result.success
        assert not result.retries_exhausted
        assert result.kind is ErrorKind.TERMINAL_CLIENT
        assert result.error_code == ErrorCode.CLIENT_ERROR
        assert result.http_status == 400
        assert recording_sleep.delays == []

    async def test_terminal_error_keeps_server_code(self, retry_executor: RetryExecutor) -> None:
        op = AlwaysFailing(
            TerminalClientError("Expired", status_code=410, error_code="CODE_EXPIRED")
        )
        result = await retry_executor.execute_with_retry(op)
        assert result.error_code == "CODE_EXPIRED"

    async def test_unsupported_error_is_not_retried(self, retry_executor: RetryExecutor) -> None:
        op = AlwaysFailing(UnsupportedOperationError("nope"))
        result = await retry_executor.execute_with_retry(op)
        assert op.calls == 1
        assert result.error_code == ErrorCode.UNSUPPORTED_OPERATION

    @pytest.mark.parametrize("status", [408, 429])
    async def test_retryable_client_statuses(
        self, retry_executor: RetryExecutor, status: int
    ) -> None:
        op = CountingOperation(TransientNetworkError("retry me", status_code=status))
        result = await retry_executor.execute_with_retry(op)
        assert result.success
        assert op.calls == 2

    async def test_unclassified_errors_are_retried(self, retry_executor: RetryExecutor) -> None:
        op = CountingOperation(RuntimeError("Code activation failed"))
        result = await retry_executor.execute_with_retry(op)
        assert result.success
        assert op.calls == 2

    async def test_retry_after_hint_sets_exact_delay(
        self, retry_executor: RetryExecutor, recording_sleep
    ) -> None:
        op = CountingOperation(
            TransientNetworkError("Too Many Requests", status_code=429, retry_after=2)
        )

        await retry_executor.execute_with_retry(op)

        assert recording_sleep.delays == [2.0]

    async def test_string_retry_after_from_foreign_error(
        self, retry_executor: RetryExecutor, recording_sleep
    ) -> None:
        class ApiError(Exception):
            def __init__(self) -> None:
                super().__init__("Too Many Requests")
                self.status_code = 429
                self.retry_after = "2"

        op = AlwaysFailing(ApiError())

        result = await retry_executor.execute_with_retry(op)

        assert op.calls == 3
        assert result.error_code == ErrorCode.RETRY_EXHAUSTED
        assert recording_sleep.delays == [2.0, 2.0]

    async def test_single_attempt_policy(self, recording_sleep) -> None:
        executor = RetryExecutor(RetryPolicy(max_attempts=1), sleep=recording_sleep)
        op = AlwaysFailing(TransientNetworkError("down"))
        result = await executor.execute_with_retry(op)
        assert op.calls == 1
        assert result.retries_exhausted
        assert recording_sleep.delays == []

    async def test_non_callable_is_programmer_error(self, retry_executor: RetryExecutor) -> None:
        with pytest.raises(TypeError):
            await retry_executor.execute_with_retry("not a function")  # type: ignore[arg-type]

    async def test_cancellation_propagates(self, retry_executor: RetryExecutor) -> None:
        async def cancelled() -> None:
            raise asyncio.CancelledError

        with pytest.raises(asyncio.CancelledError):
            await retry_executor.execute_with_retry(cancelled)

    async def test_waits_do_not_block_other_operations(self) -> None:
        """A retrying operation sleeping in backoff lets others finish first."""
        executor = RetryExecutor(RetryPolicy(base_delay=0.05, jitter_ratio=0.0))
        finished: list[str] = []

        slow = CountingOperation(TransientNetworkError("blip"), result="slow")
        fast = CountingOperation(result="fast")

        async def run(name: str, op) -> None:
            await executor.execute_with_retry(op)
            finished.append(name)

        await asyncio.gather(run("slow", slow), run("fast", fast))
        assert finished == ["fast", "slow"]

    async def test_logs_retries_and_exhaustion(
        self, retry_executor: RetryExecutor, caplog
    ) -> None:
        op = AlwaysFailing(TransientNetworkError("flaky", status_code=500))
        with caplog.at_level(logging.WARNING, logger="subkit.resilience.retry"):
            await retry_executor.execute_with_retry(op, {"operation": "activateCode"})

        messages = [r.getMessage() for r in caplog.records]
        assert any("Attempt 1/3 failed" in m for m in messages)
        assert any("Max retry attempts reached" in m for m in messages)
        assert caplog.records[0].context == {"operation": "activateCode"}

    async def test_module_level_helper(self) -> None:
        op = CountingOperation(result=5)
        result = await execute_with_retry(op, policy=RetryPolicy(max_attempts=1))
        assert result == OperationResult.ok(5)


# ---------------------------------------------------------------------------
# OperationResult
# ---------------------------------------------------------------------------


class TestOperationResult:
    def test_raise_for_failure_returns_data(self) -> None:
        assert OperationResult.ok({"a": 1}).raise_for_failure() == {"a": 1}

    def test_raise_for_failure_exhausted(self) -> None:
        result = OperationResult.exhausted(TransientNetworkError("down", status_code=503), 3)
        with pytest.raises(RetryExhaustedError) as info:
            result.raise_for_failure()
        assert info.value.attempts == 3
        assert info.value.status_code == 503

    def test_raise_for_failure_terminal(self) -> None:
        result = OperationResult.rejected(TerminalClientError("bad", status_code=422))
        with pytest.raises(TerminalClientError):
            result.raise_for_failure()

    def test_raise_for_failure_unsupported(self) -> None:
        result = OperationResult.rejected(UnsupportedOperationError("explode"))
        with pytest.raises(UnsupportedOperationError):
            result.raise_for_failure()

    def test_serialises(self) -> None:
        result = OperationResult.rejected(TerminalClientError("bad", status_code=400))
        payload = result.model_dump(mode="json")
        assert payload["success"] is False
        assert payload["kind"] == "terminal_client"
        assert payload["error_code"] == "CLIENT_ERROR"
