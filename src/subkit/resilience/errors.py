# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Tagged operation errors and their classification.

Transport failures are classified exactly once, where they are received,
into one of three kinds.  Retry logic then branches on ``error.kind``
instead of re-inspecting status codes.

    transient         connection failure, timeout, 5xx, 408, 429 -> retried
    terminal_client   any other 4xx                              -> surfaced at once
    unsupported       unknown bulk operation kind                -> surfaced at once
"""

from __future__ import annotations

from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from enum import StrEnum
from typing import Any

import httpx

from subkit.core.constants import RETRYABLE_CLIENT_STATUSES
from subkit.core.exceptions import SubkitError


class ErrorKind(StrEnum):
    TRANSIENT = "transient"
    TERMINAL_CLIENT = "terminal_client"
    UNSUPPORTED = "unsupported"


class OperationError(SubkitError):
    """A classified failure of a single network operation.

    Args:
        message: Human-readable description.
        status_code: HTTP status, when the failure came from a response.
        retry_after: Server-suggested wait in seconds, if any.
        error_code: Machine-readable code reported by the server.
        details: Extra structured detail reported by the server.
    """

    kind: ErrorKind = ErrorKind.TRANSIENT

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        retry_after: float | None = None,
        error_code: str | None = None,
        details: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.retry_after = retry_after
        self.error_code = error_code
        self.details = details

    @property
    def retryable(self) -> bool:
        return self.kind is ErrorKind.TRANSIENT

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}({self.message!r}, kind={self.kind.value}, "
            f"status_code={self.status_code})"
        )


class TransientNetworkError(OperationError):
    """Connection failure, timeout, 5xx, 408 or 429."""

    kind = ErrorKind.TRANSIENT


class TerminalClientError(OperationError):
    """A 4xx response that retrying cannot fix."""

    kind = ErrorKind.TERMINAL_CLIENT


class UnsupportedOperationError(OperationError):
    """The requested bulk operation kind has no handler."""

    kind = ErrorKind.UNSUPPORTED


class RetryExhaustedError(OperationError):
    """Every allowed attempt failed with a transient error."""

    kind = ErrorKind.TRANSIENT

    def __init__(self, last_error: OperationError, attempts: int) -> None:
        super().__init__(
            f"Gave up after {attempts} attempts: {last_error.message}",
            status_code=last_error.status_code,
            error_code=last_error.error_code,
            details=last_error.details,
        )
        self.last_error = last_error
        self.attempts = attempts


def classify_status(status_code: int) -> ErrorKind:
    if 400 <= status_code < 500 and status_code not in RETRYABLE_CLIENT_STATUSES:
        return ErrorKind.TERMINAL_CLIENT
    return ErrorKind.TRANSIENT


def parse_retry_after(value: str | None) -> float | None:
    """Parse a ``Retry-After`` header given in seconds or as an HTTP date."""
    if not value:
        return None
    value = value.strip()
    try:
        seconds = float(value)
    except ValueError:
        try:
            when = parsedate_to_datetime(value)
        except (TypeError, ValueError):
            return None
        if when.tzinfo is None:
            when = when.replace(tzinfo=UTC)
        seconds = (when - datetime.now(UTC)).total_seconds()
    return max(seconds, 0.0)


def error_for_status(
    status_code: int,
    message: str,
    *,
    retry_after: float | None = None,
    error_code: str | None = None,
    details: Any = None,
) -> OperationError:
    """Build the typed error matching an HTTP status code."""
    cls = (
        TerminalClientError
        if classify_status(status_code) is ErrorKind.TERMINAL_CLIENT
        else TransientNetworkError
    )
    return cls(
        message,
        status_code=status_code,
        retry_after=retry_after,
        error_code=error_code,
        details=details,
    )


def error_from_response(response: httpx.Response, context: str = "") -> OperationError:
    """Classify a non-2xx response, reading ``Retry-After`` and a JSON error body."""
    message = f"{context}: HTTP {response.status_code}" if context else f"HTTP {response.status_code}"
    error_code: str | None = None
    details: Any = None
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        message = body.get("message") or message
        error_code = body.get("code")
        details = body.get("details")
    return error_for_status(
        response.status_code,
        message,
        retry_after=parse_retry_after(response.headers.get("retry-after")),
        error_code=error_code,
        details=details,
    )


def _coerce_retry_after(value: Any) -> float | None:
    """Normalise a ``retry_after`` attribute from a foreign exception to seconds."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return max(float(value), 0.0)
    if isinstance(value, str):
        return parse_retry_after(value)
    return None


def classify_error(exc: BaseException) -> OperationError:
    """Convert any exception raised by an operation into an :class:`OperationError`."""
    if isinstance(exc, OperationError):
        return exc
    if isinstance(exc, httpx.HTTPStatusError):
        return error_from_response(exc.response)
    if isinstance(exc, httpx.TransportError):
        return TransientNetworkError(str(exc) or type(exc).__name__)
    status_code = getattr(exc, "status_code", None)
    if isinstance(status_code, int):
        return error_for_status(
            status_code,
            str(exc),
            retry_after=_coerce_retry_after(getattr(exc, "retry_after", None)),
        )
    # Unclassified failures are treated as transient
    return TransientNetworkError(str(exc) or type(exc).__name__)
