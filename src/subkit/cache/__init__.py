# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Subscription data caching layer."""

from __future__ import annotations

from typing import TYPE_CHECKING

from subkit.cache.helpers import RollbackHandle, optimistic_update, preload_user_data, with_cache
from subkit.cache.ttl import CacheEntry, CacheStats, TTLCache

if TYPE_CHECKING:
    from subkit.core.config import Settings


def create_cache(settings: Settings | None = None) -> TTLCache:
    """Build a :class:`TTLCache` from application settings.

    Meant to be called once by the application's composition root; the
    instance is then passed to whatever needs it.
    """
    if settings is None:
        from subkit.core.config import get_settings

        settings = get_settings()
    return TTLCache(
        settings.cache_ttls,
        default_ttl=settings.cache_default_ttl,
        sweep_interval=settings.cache_sweep_interval,
    )


__all__ = [
    "CacheEntry",
    "CacheStats",
    "RollbackHandle",
    "TTLCache",
    "create_cache",
    "optimistic_update",
    "preload_user_data",
    "with_cache",
]
