# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""In-memory cache keyed by (identifier, cache type) with per-type TTLs.

Each cache type carries its own expiration window, looked up from a TTL
table supplied at construction.  Expired entries are dropped lazily when
they are read and eagerly by a periodic sweep running as an asyncio task,
which keeps keys that are never read again from accumulating.

All operations are synchronous and never suspend, so on a single event
loop every ``get``/``set``/``invalidate`` is atomic with respect to the
others without any locking.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import time
from collections.abc import Callable, Hashable, Mapping
from typing import Any

from pydantic import BaseModel, Field, computed_field

from subkit.core.constants import DEFAULT_CACHE_TTL, DEFAULT_SWEEP_INTERVAL
from subkit.core.exceptions import CacheKeyError

logger = logging.getLogger("subkit.cache.ttl")

CacheKey = tuple[str, Hashable]


class CacheEntry:
    """A cached value with the clock reading of its last write."""

    __slots__ = ("stored_at", "ttl", "value")

    def __init__(self, value: Any, stored_at: float, ttl: float) -> None:
        self.value = value
        self.stored_at = stored_at
        self.ttl = ttl

    def is_expired(self, now: float) -> bool:
        return self.ttl <= 0 or now - self.stored_at > self.ttl


class CacheStats(BaseModel):
    """Point-in-time diagnostic snapshot of a :class:`TTLCache`."""

    total_entries: int = 0
    entries_by_type: dict[str, int] = Field(default_factory=dict)
    approximate_memory_bytes: int = 0
    hits: int = 0
    misses: int = 0

    @computed_field  # type: ignore[prop-decorator]
    @property
    def kb(self) -> int:
        return round(self.approximate_memory_bytes / 1024)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def mb(self) -> int:
        return round(self.approximate_memory_bytes / (1024 * 1024))

    @computed_field  # type: ignore[prop-decorator]
    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return round(self.hits / total, 4) if total else 0.0


def _check_key(identifier: Hashable, cache_type: str) -> None:
    if identifier is None or identifier == "":
        raise CacheKeyError("cache identifier is required")
    if not cache_type:
        raise CacheKeyError("cache type is required")


def _estimate_size(key: CacheKey, value: Any) -> int:
    cache_type, identifier = key
    size = (len(cache_type) + 1 + len(str(identifier))) * 2
    try:
        size += len(json.dumps(value, default=str)) * 2
    except (TypeError, ValueError):
        size += len(repr(value)) * 2
    return size


class TTLCache:
    """Type-scoped TTL cache.

    Args:
        ttls: Mapping of cache type to time-to-live in seconds.  A TTL of
            zero or less disables caching for that type.
        default_ttl: TTL for types missing from ``ttls``.
        sweep_interval: Seconds between background sweeps once
            :meth:`start_sweeper` has been awaited.
        clock: Monotonic time source, injectable for tests.
    """

    def __init__(
        self,
        ttls: Mapping[str, float] | None = None,
        *,
        default_ttl: float = DEFAULT_CACHE_TTL,
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttls: dict[str, float] = dict(ttls or {})
        self._default_ttl = default_ttl
        self._sweep_interval = sweep_interval
        self._clock = clock
        self._store: dict[CacheKey, CacheEntry] = {}
        self._hits = 0
        self._misses = 0
        self._sweeper: asyncio.Task[None] | None = None

    # ------------------------------------------------------------------
    # Core operations
    # ------------------------------------------------------------------

    def ttl_for(self, cache_type: str) -> float:
        """Return the TTL in seconds configured for *cache_type*."""
        return self._ttls.get(cache_type, self._default_ttl)

    def get(self, identifier: Hashable, cache_type: str, default: Any = None) -> Any:
        """Return the cached value, or *default* when absent or expired."""
        _check_key(identifier, cache_type)
        key = (cache_type, identifier)
        entry = self._store.get(key)
        if entry is None:
            self._misses += 1
            return default
        if entry.is_expired(self._clock()):
            del self._store[key]
            self._misses += 1
            logger.debug("Cache entry expired: %s:%s", cache_type, identifier)
            return default
        self._hits += 1
        return entry.value

    def set(self, identifier: Hashable, cache_type: str, value: Any) -> None:
        _check_key(identifier, cache_type)
        self._store[(cache_type, identifier)] = CacheEntry(
            value=value,
            stored_at=self._clock(),
            ttl=self.ttl_for(cache_type),
        )

    def invalidate(self, identifier: Hashable, cache_type: str) -> None:
        _check_key(identifier, cache_type)
        self._store.pop((cache_type, identifier), None)

    def invalidate_type(self, cache_type: str) -> int:
        """Drop every entry of *cache_type* and return how many were removed."""
        if not cache_type:
            raise CacheKeyError("cache type is required")
        doomed = [key for key in self._store if key[0] == cache_type]
        for key in doomed:
            del self._store[key]
        if doomed:
            logger.debug("Invalidated %d '%s' entries", len(doomed), cache_type)
        return len(doomed)

    def clear(self) -> None:
        self._store.clear()

    def get_stats(self) -> CacheStats:
        by_type: dict[str, int] = {}
        memory = 0
        for key, entry in self._store.items():
            by_type[key[0]] = by_type.get(key[0], 0) + 1
            memory += _estimate_size(key, entry.value)
        return CacheStats(
            total_entries=len(self._store),
            entries_by_type=by_type,
            approximate_memory_bytes=memory,
            hits=self._hits,
            misses=self._misses,
        )

    def __len__(self) -> int:
        return len(self._store)

    # ------------------------------------------------------------------
    # Periodic sweep
    # ------------------------------------------------------------------

    def sweep(self) -> int:
        """Evict all expired entries now and return the number removed."""
        now = self._clock()
        expired = [key for key, entry in self._store.items() if entry.is_expired(now)]
        for key in expired:
            del self._store[key]
        if expired:
            logger.debug("Cache sweep removed %d expired entries", len(expired))
        return len(expired)

    @property
    def sweeping(self) -> bool:
        return self._sweeper is not None and not self._sweeper.done()

    async def start_sweeper(self) -> None:
        """Start the background sweep loop on the running event loop."""
        if self.sweeping:
            return
        self._sweeper = asyncio.create_task(self._sweep_loop())
        logger.info("Cache sweeper started (interval=%ss)", self._sweep_interval)

    async def stop_sweeper(self) -> None:
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._sweeper
        self._sweeper = None
        logger.info("Cache sweeper stopped")

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self._sweep_interval)
            try:
                self.sweep()
            except Exception:
                logger.exception("Cache sweep failed")

    async def close(self) -> None:
        """Stop the sweeper and drop every entry."""
        await self.stop_sweeper()
        self.clear()

    async def __aenter__(self) -> TTLCache:
        await self.start_sweeper()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
