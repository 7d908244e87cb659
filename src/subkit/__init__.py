# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""subkit - caching and resilient bulk operations for subscription billing clients."""

__version__ = "0.1.0"

from subkit.cache import (
    RollbackHandle,
    TTLCache,
    create_cache,
    optimistic_update,
    preload_user_data,
    with_cache,
)
from subkit.resilience import (
    BulkExecutor,
    BulkOperationResult,
    OperationResult,
    RetryExecutor,
    RetryPolicy,
    execute_with_retry,
)

__all__ = [
    "BulkExecutor",
    "BulkOperationResult",
    "OperationResult",
    "RetryExecutor",
    "RetryPolicy",
    "RollbackHandle",
    "TTLCache",
    "__version__",
    "create_cache",
    "execute_with_retry",
    "optimistic_update",
    "preload_user_data",
    "with_cache",
]
