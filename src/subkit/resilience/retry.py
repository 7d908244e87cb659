# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Bounded retry with jittered exponential backoff.

:meth:`RetryExecutor.execute_with_retry` runs one async operation,
retrying transient failures and returning a structured
:class:`OperationResult` for every expected outcome so callers can branch
without exception handling.

Delay before retry *n* (1-based attempt that just failed)::

    retry_after                                   if the error carries one
    min(base * 2**(n-1) * (1 + U[0, jitter)), max_delay)   otherwise
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel

from subkit.core.constants import (
    DEFAULT_BASE_DELAY,
    DEFAULT_JITTER_RATIO,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_MAX_DELAY,
    ErrorCode,
)
from subkit.resilience.errors import (
    ErrorKind,
    OperationError,
    RetryExhaustedError,
    TerminalClientError,
    TransientNetworkError,
    UnsupportedOperationError,
    classify_error,
)

if TYPE_CHECKING:
    from subkit.core.config import Settings

logger = logging.getLogger("subkit.resilience.retry")

OperationFn = Callable[[], Awaitable[Any]]


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt cap and backoff parameters (all durations in seconds)."""

    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    base_delay: float = DEFAULT_BASE_DELAY
    max_delay: float = DEFAULT_MAX_DELAY
    jitter_ratio: float = DEFAULT_JITTER_RATIO

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    def compute_delay(
        self,
        attempt: int,
        error: OperationError,
        rng: random.Random | None = None,
    ) -> float:
        """Return the wait before the attempt following *attempt*."""
        if error.retry_after is not None:
            return error.retry_after
        backoff = self.base_delay * (2 ** (attempt - 1))
        jitter = (rng or random).random() * self.jitter_ratio * backoff
        return min(backoff + jitter, self.max_delay)

    @classmethod
    def from_settings(cls, settings: Settings) -> RetryPolicy:
        return cls(
            max_attempts=settings.retry_max_attempts,
            base_delay=settings.retry_base_delay,
            max_delay=settings.retry_max_delay,
            jitter_ratio=settings.retry_jitter_ratio,
        )


@dataclass
class RetryContext:
    """State of one ``execute_with_retry`` call."""

    max_attempts: int
    labels: Mapping[str, Any] = field(default_factory=dict)
    attempt: int = 1
    last_error: OperationError | None = None
    errors: list[OperationError] = field(default_factory=list)

    def record_failure(self, error: OperationError) -> None:
        self.last_error = error
        self.errors.append(error)

    @property
    def can_retry(self) -> bool:
        return self.attempt < self.max_attempts


class OperationResult(BaseModel):
    """Outcome of a retried operation.

    ``retries_exhausted`` separates "gave up after retries" from "rejected
    immediately" (terminal client or unsupported-operation errors).
    """

    success: bool
    data: Any = None
    error: str | None = None
    error_code: str | None = None
    http_status: int | None = None
    details: Any = None
    kind: ErrorKind | None = None
    attempts: int = 1
    retries_exhausted: bool = False

    @classmethod
    def ok(cls, data: Any, attempts: int = 1) -> OperationResult:
        return cls(success=True, data=data, attempts=attempts)

    @classmethod
    def rejected(cls, error: OperationError, attempts: int = 1) -> OperationResult:
        default_code = (
            ErrorCode.UNSUPPORTED_OPERATION
            if error.kind is ErrorKind.UNSUPPORTED
            else ErrorCode.CLIENT_ERROR
        )
        return cls(
            success=False,
            error=error.message,
            error_code=error.error_code or default_code,
            http_status=error.status_code,
            details=error.details,
            kind=error.kind,
            attempts=attempts,
        )

    @classmethod
    def exhausted(cls, error: OperationError, attempts: int) -> OperationResult:
        return cls(
            success=False,
            error=error.message,
            error_code=ErrorCode.RETRY_EXHAUSTED,
            http_status=error.status_code,
            details=error.details,
            kind=error.kind,
            attempts=attempts,
            retries_exhausted=True,
        )

    def raise_for_failure(self) -> Any:
        """Return ``data`` on success, otherwise raise the matching typed error."""
        if self.success:
            return self.data
        message = self.error or "Operation failed"
        if self.retries_exhausted:
            last = TransientNetworkError(
                message, status_code=self.http_status, details=self.details
            )
            raise RetryExhaustedError(last, self.attempts)
        cls = (
            UnsupportedOperationError
            if self.kind is ErrorKind.UNSUPPORTED
            else TerminalClientError
        )
        raise cls(
            message,
            status_code=self.http_status,
            error_code=self.error_code,
            details=self.details,
        )


class RetryExecutor:
    """Runs operations under a :class:`RetryPolicy`.

    Args:
        policy: Attempt cap and backoff parameters.
        sleep: Coroutine used to wait between attempts.  Each wait only
            suspends the operation being retried.
        rng: Random source for jitter.
    """

    def __init__(
        self,
        policy: RetryPolicy | None = None,
        *,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        rng: random.Random | None = None,
    ) -> None:
        self.policy = policy or RetryPolicy()
        self._sleep = sleep
        self._rng = rng or random.Random()

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> RetryExecutor:
        if settings is None:
            from subkit.core.config import get_settings

            settings = get_settings()
        return cls(RetryPolicy.from_settings(settings))

    async def execute_with_retry(
        self,
        operation_fn: OperationFn,
        context: Mapping[str, Any] | None = None,
    ) -> OperationResult:
        """Run *operation_fn* until it succeeds, fails terminally, or runs out of attempts.

        Args:
            operation_fn: Zero-argument coroutine function performing one
                safely retryable call.
            context: Labels included in log messages (operation name, ids).

        Raises:
            TypeError: If *operation_fn* is not callable.
        """
        if not callable(operation_fn):
            raise TypeError(f"operation_fn must be callable, got {type(operation_fn).__name__}")

        ctx = RetryContext(max_attempts=self.policy.max_attempts, labels=dict(context or {}))
        while True:
            try:
                data = await operation_fn()
            except Exception as exc:
                error = classify_error(exc)
                ctx.record_failure(error)
            else:
                return OperationResult.ok(data, attempts=ctx.attempt)

            if not error.retryable:
                logger.info(
                    "Operation rejected without retry (%s): %s",
                    error.kind.value,
                    error.message,
                    extra={"context": ctx.labels, "status_code": error.status_code},
                )
                return OperationResult.rejected(error, attempts=ctx.attempt)

            if not ctx.can_retry:
                logger.error(
                    "Max retry attempts reached after %d attempts: %s",
                    ctx.attempt,
                    error.message,
                    extra={"context": ctx.labels, "status_code": error.status_code},
                )
                return OperationResult.exhausted(error, attempts=ctx.attempt)

            delay = self.policy.compute_delay(ctx.attempt, error, self._rng)
            logger.warning(
                "Attempt %d/%d failed, retrying in %.2fs: %s",
                ctx.attempt,
                ctx.max_attempts,
                delay,
                error.message,
                extra={"context": ctx.labels, "status_code": error.status_code},
            )
            await self._sleep(delay)
            ctx.attempt += 1


async def execute_with_retry(
    operation_fn: OperationFn,
    context: Mapping[str, Any] | None = None,
    *,
    policy: RetryPolicy | None = None,
) -> OperationResult:
    """Convenience wrapper around a throwaway :class:`RetryExecutor`."""
    return await RetryExecutor(policy).execute_with_retry(operation_fn, context)
