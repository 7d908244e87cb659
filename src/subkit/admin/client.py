# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Async HTTP client for the redemption-code admin API."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime
from typing import TYPE_CHECKING, Any

import httpx

from subkit import __version__
from subkit.cache import TTLCache, with_cache
from subkit.core.constants import BulkAction, CacheType
from subkit.core.exceptions import ConfigurationError
from subkit.resilience.bulk import BulkExecutor, BulkOperationResult, TargetOperation
from subkit.resilience.errors import TransientNetworkError, error_from_response
from subkit.resilience.retry import OperationResult, RetryExecutor

if TYPE_CHECKING:
    from subkit.core.config import Settings

logger = logging.getLogger("subkit.admin.client")

CODES_PATH = "/api/admin/redemption/codes"
ANALYTICS_PATH = "/api/admin/redemption/analytics"
GENERATE_PATH = "/api/admin/redemption/generate"
APPLY_PATH = "/api/admin/redemption/apply"
EXPORT_PATH = "/api/admin/redemption/export"
_TIMEOUT = 10.0
_USER_AGENT = f"subkit/{__version__}"


def make_cache_key(params: Mapping[str, Any]) -> str:
    """Deterministic key from query parameters, e.g. ``limit=20&status=active``."""
    return "&".join(f"{k}={params[k]}" for k in sorted(params)) or "all"


def query_params(params: Mapping[str, Any]) -> dict[str, Any]:
    """Drop empty values and render datetimes as ISO 8601."""
    cleaned: dict[str, Any] = {}
    for key, value in params.items():
        if value is None or value == "":
            continue
        cleaned[key] = value.isoformat() if isinstance(value, datetime) else value
    return cleaned


def _mask_code(code: str) -> str:
    return f"{code[:4]}***"


def _unwrap(response: httpx.Response, context: str) -> Any:
    """Return ``data`` from a ``{"status": "success", "data": ...}`` envelope."""
    if not response.is_success:
        raise error_from_response(response, context)
    try:
        body = response.json()
    except ValueError as exc:
        raise TransientNetworkError(f"{context}: invalid JSON response") from exc
    if not isinstance(body, dict) or body.get("status") != "success":
        message = body.get("message") if isinstance(body, dict) else None
        raise TransientNetworkError(message or f"{context} failed")
    return body.get("data")


class RedemptionAdminClient:
    """Admin operations on redemption codes.

    Mutations raise classified :mod:`subkit.resilience.errors` on failure so
    they can be fed straight into a :class:`BulkExecutor`; after a
    successful mutation every cached ``codes`` read is invalidated.

    Parameters
    ----------
    base_url:
        Root URL of the billing backend.
    token:
        Bearer token sent as ``Authorization``; obtained elsewhere.
    cache:
        Cache for code listings and analytics.  A private one is created
        when omitted.
    retry:
        Executor used for reads and for every bulk target.
    transport:
        Optional httpx transport (useful for testing).
    """

    def __init__(
        self,
        base_url: str,
        *,
        token: str = "",
        timeout: float = _TIMEOUT,
        cache: TTLCache | None = None,
        retry: RetryExecutor | None = None,
        max_concurrency: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.cache = cache if cache is not None else TTLCache()
        self.retry = retry or RetryExecutor()
        self._token = token
        self._max_concurrency = max_concurrency
        self._transport = transport

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        *,
        cache: TTLCache | None = None,
    ) -> RedemptionAdminClient:
        if settings is None:
            from subkit.core.config import get_settings

            settings = get_settings()
        if not settings.api_base_url:
            raise ConfigurationError("SUBKIT_API_BASE_URL is not set")
        if cache is None:
            from subkit.cache import create_cache

            cache = create_cache(settings)
        return cls(
            settings.api_base_url,
            token=settings.api_token,
            timeout=settings.api_timeout,
            cache=cache,
            retry=RetryExecutor.from_settings(settings),
            max_concurrency=settings.bulk_max_concurrency,
        )

    def _client(self) -> httpx.AsyncClient:
        headers = {"User-Agent": _USER_AGENT}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout),
            headers=headers,
            transport=self._transport,
        )

    async def _send(
        self,
        method: str,
        path: str,
        context: str,
        *,
        json: Any = None,
        params: Mapping[str, Any] | None = None,
    ) -> httpx.Response:
        try:
            async with self._client() as client:
                return await client.request(method, path, json=json, params=params)
        except httpx.TransportError as exc:
            raise TransientNetworkError(f"{context}: {exc or type(exc).__name__}") from exc

    async def _request(
        self,
        method: str,
        path: str,
        context: str,
        *,
        json: Any = None,
        params: Mapping[str, Any] | None = None,
    ) -> Any:
        response = await self._send(method, path, context, json=json, params=params)
        return _unwrap(response, context)

    # ------------------------------------------------------------------
    # Single-code mutations
    # ------------------------------------------------------------------

    async def activate_code(self, code_id: str, activation_date: datetime | None = None) -> Any:
        logger.info("Activating redemption code %s", code_id)
        data = await self._request(
            "PUT",
            f"{CODES_PATH}/{code_id}/activate",
            f"activate {code_id}",
            json={"activationDate": activation_date.isoformat() if activation_date else None},
        )
        self.cache.invalidate_type(CacheType.CODES)
        return data

    async def deactivate_code(self, code_id: str, reason: str = "Manual deactivation") -> Any:
        logger.info("Deactivating redemption code %s (reason=%s)", code_id, reason)
        data = await self._request(
            "PUT",
            f"{CODES_PATH}/{code_id}/deactivate",
            f"deactivate {code_id}",
            json={"reason": reason},
        )
        self.cache.invalidate_type(CacheType.CODES)
        return data

    async def update_code(self, code_id: str, updates: Mapping[str, Any]) -> Any:
        logger.info("Updating redemption code %s (fields=%s)", code_id, sorted(updates))
        data = await self._request(
            "PUT", f"{CODES_PATH}/{code_id}", f"update {code_id}", json=dict(updates)
        )
        self.cache.invalidate_type(CacheType.CODES)
        return data

    # ------------------------------------------------------------------
    # Cached reads
    # ------------------------------------------------------------------

    async def list_codes(self, **filters: Any) -> OperationResult:
        """List codes matching *filters*, read through the ``codes`` cache."""
        filters = query_params(filters)

        async def fetch() -> Any:
            return await self._request("GET", CODES_PATH, "list codes", params=filters)

        cached = with_cache(self.cache, fetch, make_cache_key(filters), CacheType.CODES)
        return await self.retry.execute_with_retry(cached, {"operation": "list_codes"})

    async def get_analytics(self, **params: Any) -> OperationResult:
        params = query_params(params)

        async def fetch() -> Any:
            return await self._request("GET", ANALYTICS_PATH, "analytics", params=params)

        cached = with_cache(self.cache, fetch, make_cache_key(params), CacheType.ANALYTICS)
        return await self.retry.execute_with_retry(cached, {"operation": "get_analytics"})

    # ------------------------------------------------------------------
    # Generation, manual application and export
    # ------------------------------------------------------------------

    async def generate_codes(self, config: Mapping[str, Any], count: int = 1) -> OperationResult:
        """Generate *count* codes from *config*; drops cached ``codes`` on success."""

        async def generate() -> Any:
            logger.info(
                "Generating %d redemption codes (type=%s)", count, config.get("codeType")
            )
            data = await self._request(
                "POST", GENERATE_PATH, "generate codes", json={**config, "count": count}
            )
            self.cache.invalidate_type(CacheType.CODES)
            return data

        return await self.retry.execute_with_retry(
            generate,
            {"operation": "generate_codes", "code_type": config.get("codeType"), "count": count},
        )

    async def manually_apply_code(
        self,
        user_id: str,
        code: str,
        *,
        reason: str | None = None,
        bypass_validation: bool = False,
        notify_user: bool = True,
    ) -> OperationResult:
        """Apply *code* to *user_id* on the user's behalf."""
        masked = _mask_code(code)

        async def apply() -> Any:
            logger.info("Manually applying redemption code %s to user %s", masked, user_id)
            data = await self._request(
                "POST",
                APPLY_PATH,
                f"apply {masked}",
                json={
                    "userId": user_id,
                    "code": code,
                    "reason": reason or "Manual application by admin",
                    "bypassValidation": bypass_validation,
                    "notifyUser": notify_user,
                },
            )
            self.cache.invalidate_type(CacheType.CODES)
            return data

        return await self.retry.execute_with_retry(
            apply, {"operation": "manually_apply_code", "user_id": user_id, "code": masked}
        )

    async def export_data(self, **params: Any) -> OperationResult:
        """Export redemption data.

        With ``format="csv"`` the result data is the raw CSV text; otherwise
        it is the full JSON body returned by the server.
        """
        params = query_params(params)
        as_csv = params.get("format") == "csv"

        async def export() -> Any:
            logger.info(
                "Exporting redemption data (format=%s, type=%s)",
                params.get("format"),
                params.get("type"),
            )
            response = await self._send("GET", EXPORT_PATH, "export", params=params)
            if as_csv:
                if not response.is_success:
                    raise error_from_response(response, "export")
                return response.text
            _unwrap(response, "export")
            return response.json()

        return await self.retry.execute_with_retry(
            export, {"operation": "export_data", "format": params.get("format")}
        )

    # ------------------------------------------------------------------
    # Bulk
    # ------------------------------------------------------------------

    def operations(self) -> dict[str, TargetOperation]:
        """Dispatch table of bulk actions to single-code calls."""

        async def activate(code_id: str, options: Mapping[str, Any]) -> Any:
            return await self.activate_code(code_id, options.get("activation_date"))

        async def deactivate(code_id: str, options: Mapping[str, Any]) -> Any:
            return await self.deactivate_code(
                code_id, options.get("reason") or "Manual deactivation"
            )

        async def update(code_id: str, options: Mapping[str, Any]) -> Any:
            return await self.update_code(code_id, options.get("updates") or {})

        return {
            BulkAction.ACTIVATE: activate,
            BulkAction.DEACTIVATE: deactivate,
            BulkAction.UPDATE: update,
        }

    async def bulk_operation(
        self,
        code_ids: list[str],
        operation: str,
        options: Mapping[str, Any] | None = None,
    ) -> BulkOperationResult:
        executor = BulkExecutor(
            self.operations(), retry=self.retry, max_concurrency=self._max_concurrency
        )
        return await executor.bulk_operation(code_ids, operation, options)
