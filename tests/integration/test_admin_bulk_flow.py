# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""End-to-end flow: cached listing, optimistic bulk deactivate, rollback on failure."""

from __future__ import annotations

import httpx
import respx

from subkit.admin.client import RedemptionAdminClient
from subkit.cache import optimistic_update
from subkit.cache.ttl import TTLCache
from subkit.core.constants import CacheType
from subkit.resilience.retry import RetryExecutor

BASE = "https://billing.example.com"
CODES = f"{BASE}/api/admin/redemption/codes"

LISTING = [
    {"id": "a", "active": True},
    {"id": "b", "active": True},
]


def _mark_inactive(codes):
    return [{**code, "active": False} for code in codes]


@respx.mock
async def test_successful_bulk_refreshes_listing(
    cache: TTLCache, retry_executor: RetryExecutor
) -> None:
    client = RedemptionAdminClient(BASE, token="tok_integration", cache=cache, retry=retry_executor)
    listing = respx.get(CODES).mock(
        side_effect=[
            httpx.Response(200, json={"status": "success", "data": LISTING}),
            httpx.Response(200, json={"status": "success", "data": _mark_inactive(LISTING)}),
        ]
    )
    respx.put(url__regex=rf"{CODES}/\w+/deactivate").mock(
        return_value=httpx.Response(200, json={"status": "success", "data": {}})
    )

    first = await client.list_codes()
    optimistic_update(cache, "all", CacheType.CODES, _mark_inactive, first.data)
    assert cache.get("all", CacheType.CODES) == _mark_inactive(LISTING)

    result = await client.bulk_operation(["a", "b"], "deactivate", {"reason": "campaign ended"})
    assert result.failed == 0

    # Successful mutations dropped the speculative entry; the next read goes to the server
    refreshed = await client.list_codes()
    assert refreshed.data == _mark_inactive(LISTING)
    assert listing.call_count == 2


@respx.mock
async def test_failed_bulk_rolls_back_speculative_listing(
    cache: TTLCache, retry_executor: RetryExecutor, recording_sleep
) -> None:
    client = RedemptionAdminClient(BASE, token="tok_integration", cache=cache, retry=retry_executor)
    respx.get(CODES).mock(
        return_value=httpx.Response(200, json={"status": "success", "data": LISTING})
    )
    respx.put(url__regex=rf"{CODES}/\w+/deactivate").mock(
        return_value=httpx.Response(503, headers={"Retry-After": "2"})
    )

    first = await client.list_codes()
    rollback = optimistic_update(cache, "all", CacheType.CODES, _mark_inactive, first.data)

    result = await client.bulk_operation(["a", "b"], "deactivate")
    assert result.failed == 2
    assert [r.attempts for r in result.results] == [3, 3]
    # Both targets waited on the server hint between attempts
    assert recording_sleep.delays == [2.0] * 4

    rollback()
    assert cache.get("all", CacheType.CODES) == LISTING
