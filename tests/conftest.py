# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Shared test fixtures and configuration."""

from __future__ import annotations

import random

import pytest

from subkit.cache.ttl import TTLCache
from subkit.core.constants import DEFAULT_CACHE_TTLS
from subkit.resilience.retry import RetryExecutor, RetryPolicy


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Stand-in for ``asyncio.sleep`` that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> TTLCache:
    return TTLCache(DEFAULT_CACHE_TTLS, clock=clock)


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def retry_executor(recording_sleep: RecordingSleep) -> RetryExecutor:
    return RetryExecutor(RetryPolicy(), sleep=recording_sleep, rng=random.Random(7))


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    """Keep developer .env files and SUBKIT_* variables out of tests."""
    import os

    for name in list(os.environ):
        if name.startswith("SUBKIT_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
