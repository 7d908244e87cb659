# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Read-through and optimistic-update helpers built on :class:`TTLCache`."""

from __future__ import annotations

import functools
import inspect
import logging
from collections.abc import Awaitable, Callable, Hashable
from typing import Any, Protocol

from subkit.cache.ttl import TTLCache
from subkit.core.constants import CacheType

logger = logging.getLogger("subkit.cache.helpers")

_MISSING = object()


def with_cache(
    cache: TTLCache,
    operation: Callable[..., Any],
    identifier: Hashable,
    cache_type: str,
) -> Callable[..., Any]:
    """Wrap *operation* so its result is read through *cache*.

    A hit returns the cached value without calling *operation*.  On a miss
    the operation runs and a successful result is stored; exceptions
    propagate and nothing is cached.  Concurrent misses on the same key are
    not coalesced: each one calls *operation*.

    Coroutine functions get an async wrapper, plain callables a sync one.
    A plain callable that returns an awaitable (``lambda: api.fetch(uid)``)
    is detected on its first miss: from then on the wrapper returns
    awaitables, and the result is stored only once the awaitable succeeds.
    """
    if inspect.iscoroutinefunction(operation):

        @functools.wraps(operation)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            cached = cache.get(identifier, cache_type, _MISSING)
            if cached is not _MISSING:
                return cached
            result = await operation(*args, **kwargs)
            cache.set(identifier, cache_type, result)
            return result

        return async_wrapper

    returns_awaitable = False

    async def resolved(value: Any) -> Any:
        return value

    async def store_when_done(awaitable: Awaitable[Any]) -> Any:
        result = await awaitable
        cache.set(identifier, cache_type, result)
        return result

    @functools.wraps(operation)
    def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
        nonlocal returns_awaitable
        cached = cache.get(identifier, cache_type, _MISSING)
        if cached is not _MISSING:
            return resolved(cached) if returns_awaitable else cached
        result = operation(*args, **kwargs)
        if inspect.isawaitable(result):
            returns_awaitable = True
            return store_when_done(result)
        cache.set(identifier, cache_type, result)
        return result

    return sync_wrapper


class RollbackHandle:
    """Speculative value plus the means to undo it.

    Calling the handle (or :meth:`rollback`) writes the captured snapshot
    back, or invalidates the key when the snapshot is ``None``.  It never
    diffs against the current value, so any writes made in between are
    overwritten, and calling it twice is harmless.
    """

    __slots__ = ("_cache", "cache_type", "identifier", "snapshot", "value")

    def __init__(
        self,
        cache: TTLCache,
        identifier: Hashable,
        cache_type: str,
        value: Any,
        snapshot: Any,
    ) -> None:
        self._cache = cache
        self.identifier = identifier
        self.cache_type = cache_type
        self.value = value
        self.snapshot = snapshot

    def rollback(self) -> None:
        if self.snapshot is None:
            self._cache.invalidate(self.identifier, self.cache_type)
        else:
            self._cache.set(self.identifier, self.cache_type, self.snapshot)
        logger.debug("Rolled back %s:%s", self.cache_type, self.identifier)

    __call__ = rollback


def optimistic_update(
    cache: TTLCache,
    identifier: Hashable,
    cache_type: str,
    update_fn: Callable[[Any], Any],
    rollback_value: Any = None,
) -> RollbackHandle:
    """Write ``update_fn(current)`` into the cache before the server confirms it.

    *current* is the cached value, or *rollback_value* when nothing is
    cached.  The returned handle restores *rollback_value* and should be
    invoked from the caller's failure branch.
    """
    current = cache.get(identifier, cache_type, _MISSING)
    if current is _MISSING:
        current = rollback_value
    speculative = update_fn(current)
    cache.set(identifier, cache_type, speculative)
    return RollbackHandle(cache, identifier, cache_type, speculative, rollback_value)


class UserDataApi(Protocol):
    async def get_user_plan(self, user_id: str) -> Any: ...

    async def get_usage_stats(self, user_id: str) -> Any: ...


async def preload_user_data(cache: TTLCache, user_id: str, api: UserDataApi) -> None:
    """Warm the plan and usage entries for *user_id*.

    Failures are logged and never raised so a slow or failing backend does
    not block whatever triggered the preload.
    """
    try:
        if cache.get(user_id, CacheType.USER_PLAN, _MISSING) is _MISSING:
            cache.set(user_id, CacheType.USER_PLAN, await api.get_user_plan(user_id))
        if cache.get(user_id, CacheType.USAGE_STATS, _MISSING) is _MISSING:
            cache.set(user_id, CacheType.USAGE_STATS, await api.get_usage_stats(user_id))
    except Exception:
        logger.warning("Failed to preload user data for %s", user_id, exc_info=True)
