# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Retry, backoff and bulk fan-out for network operations."""

from subkit.resilience.bulk import BulkExecutor, BulkItemResult, BulkOperationResult
from subkit.resilience.errors import (
    ErrorKind,
    OperationError,
    RetryExhaustedError,
    TerminalClientError,
    TransientNetworkError,
    UnsupportedOperationError,
    classify_error,
)
from subkit.resilience.retry import (
    OperationResult,
    RetryContext,
    RetryExecutor,
    RetryPolicy,
    execute_with_retry,
)

__all__ = [
    "BulkExecutor",
    "BulkItemResult",
    "BulkOperationResult",
    "ErrorKind",
    "OperationError",
    "OperationResult",
    "RetryContext",
    "RetryExecutor",
    "RetryExhaustedError",
    "RetryPolicy",
    "TerminalClientError",
    "TransientNetworkError",
    "UnsupportedOperationError",
    "classify_error",
    "execute_with_retry",
]
