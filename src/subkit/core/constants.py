# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Enumerations, cache TTL defaults, and retry constants."""

from enum import StrEnum


class CacheType(StrEnum):
    USER_PLAN = "userPlan"
    USAGE_STATS = "usageStats"
    SUBSCRIPTION_HISTORY = "subscriptionHistory"
    PLAN_COMPARISON = "planComparison"
    QUOTA_INFO = "quotaInfo"
    CODES = "codes"
    ANALYTICS = "analytics"


class BulkAction(StrEnum):
    ACTIVATE = "activate"
    DEACTIVATE = "deactivate"
    UPDATE = "update"


class ErrorCode(StrEnum):
    CLIENT_ERROR = "CLIENT_ERROR"
    RETRY_EXHAUSTED = "RETRY_EXHAUSTED"
    UNSUPPORTED_OPERATION = "UNSUPPORTED_OPERATION"


# Seconds
DEFAULT_CACHE_TTL = 300.0
DEFAULT_SWEEP_INTERVAL = 300.0

DEFAULT_CACHE_TTLS: dict[str, float] = {
    CacheType.USER_PLAN: 300.0,
    CacheType.USAGE_STATS: 60.0,
    CacheType.SUBSCRIPTION_HISTORY: 600.0,
    CacheType.PLAN_COMPARISON: 1800.0,
    CacheType.QUOTA_INFO: 30.0,
    CacheType.CODES: 120.0,
    CacheType.ANALYTICS: 300.0,
}

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BASE_DELAY = 1.0
DEFAULT_MAX_DELAY = 30.0
DEFAULT_JITTER_RATIO = 0.1

# 4xx statuses that are still worth retrying (timeout, rate limited)
RETRYABLE_CLIENT_STATUSES = frozenset({408, 429})
