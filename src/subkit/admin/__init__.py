# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Redemption-code administration client."""

from subkit.admin.client import RedemptionAdminClient, make_cache_key

__all__ = ["RedemptionAdminClient", "make_cache_key"]
