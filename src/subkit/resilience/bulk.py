# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Fan one operation out over many independent targets.

Every target runs through :meth:`RetryExecutor.execute_with_retry` in its
own coroutine, so retry counters and backoff waits are never shared.  All
coroutines are joined with ``asyncio.gather``; each one converts its own
failure into a :class:`BulkItemResult`, so nothing propagates to siblings
or to the join point.  Results come back in input order.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field, computed_field

from subkit.core.constants import ErrorCode
from subkit.resilience.errors import UnsupportedOperationError
from subkit.resilience.retry import OperationResult, RetryExecutor

logger = logging.getLogger("subkit.resilience.bulk")

TargetOperation = Callable[[str, Mapping[str, Any]], Awaitable[Any]]


class BulkItemResult(BaseModel):
    """Outcome for one target of a bulk operation."""

    target_id: str
    success: bool
    data: Any = None
    error: str | None = None
    error_code: str | None = None
    http_status: int | None = None
    attempts: int = 0

    @classmethod
    def from_operation(cls, target_id: str, result: OperationResult) -> BulkItemResult:
        return cls(
            target_id=target_id,
            success=result.success,
            data=result.data,
            error=result.error,
            error_code=result.error_code,
            http_status=result.http_status,
            attempts=result.attempts,
        )


class BulkOperationResult(BaseModel):
    """Aggregate of a bulk operation; ``results`` follows input order."""

    operation: str
    results: list[BulkItemResult] = Field(default_factory=list)
    started_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    completed_at: datetime | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total(self) -> int:
        return len(self.results)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def successful(self) -> int:
        return sum(1 for r in self.results if r.success)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.success)

    @property
    def failed_targets(self) -> list[BulkItemResult]:
        return [r for r in self.results if not r.success]

    def summary(self) -> str:
        return f"{self.successful} of {self.total} succeeded"


class BulkExecutor:
    """Dispatches bulk operations by kind.

    Args:
        operations: Mapping of operation kind to ``async fn(target_id, options)``.
        retry: Executor used for every per-target call.
        max_concurrency: Optional cap on simultaneously running targets.
            ``None`` starts every target at once.
    """

    def __init__(
        self,
        operations: Mapping[str, TargetOperation] | None = None,
        *,
        retry: RetryExecutor | None = None,
        max_concurrency: int | None = None,
    ) -> None:
        if max_concurrency is not None and max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self._operations: dict[str, TargetOperation] = dict(operations or {})
        self._retry = retry or RetryExecutor()
        self._max_concurrency = max_concurrency

    def register(self, kind: str, operation: TargetOperation) -> None:
        self._operations[kind] = operation

    @property
    def supported_operations(self) -> list[str]:
        return sorted(self._operations)

    async def bulk_operation(
        self,
        target_ids: Sequence[str],
        operation_kind: str,
        options: Mapping[str, Any] | None = None,
    ) -> BulkOperationResult:
        """Run *operation_kind* against every target and aggregate the outcomes.

        Every target is attempted exactly once (each attempt itself retried
        per the retry policy), and the batch always completes.
        """
        options = dict(options or {})
        result = BulkOperationResult(operation=operation_kind)
        logger.info(
            "Performing bulk operation '%s' on %d targets", operation_kind, len(target_ids)
        )

        operation = self._operations.get(operation_kind)
        if operation is None:
            error = UnsupportedOperationError(
                f"Unsupported bulk operation: {operation_kind}",
                error_code=ErrorCode.UNSUPPORTED_OPERATION,
            )
            rejected = OperationResult.rejected(error, attempts=0)
            result.results = [
                BulkItemResult.from_operation(str(target_id), rejected)
                for target_id in target_ids
            ]
        else:
            semaphore = (
                asyncio.Semaphore(self._max_concurrency)
                if self._max_concurrency is not None
                else None
            )
            result.results = list(
                await asyncio.gather(
                    *(
                        self._run_one(str(target_id), operation_kind, operation, options, semaphore)
                        for target_id in target_ids
                    )
                )
            )

        result.completed_at = datetime.now(UTC)
        logger.info(
            "Bulk operation '%s' finished: %s",
            operation_kind,
            result.summary(),
            extra={"successful": result.successful, "failed": result.failed},
        )
        return result

    async def _run_one(
        self,
        target_id: str,
        operation_kind: str,
        operation: TargetOperation,
        options: Mapping[str, Any],
        semaphore: asyncio.Semaphore | None,
    ) -> BulkItemResult:
        async def call() -> Any:
            return await operation(target_id, options)

        context = {"operation": operation_kind, "target_id": target_id}
        try:
            if semaphore is None:
                outcome = await self._retry.execute_with_retry(call, context)
            else:
                async with semaphore:
                    outcome = await self._retry.execute_with_retry(call, context)
        except Exception as exc:
            # execute_with_retry only raises for programmer errors; keep them
            # confined to this target.
            logger.exception("Bulk target %s failed unexpectedly", target_id)
            return BulkItemResult(target_id=target_id, success=False, error=str(exc))
        if not outcome.success:
            logger.warning(
                "Bulk target %s failed: %s", target_id, outcome.error,
                extra={"error_code": outcome.error_code},
            )
        return BulkItemResult.from_operation(target_id, outcome)
