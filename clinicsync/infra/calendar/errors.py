"""Map raw adapter exceptions onto credential-expired / transient / unknown."""
from __future__ import annotations

import asyncio

import httplib2
from google.auth.exceptions import RefreshError, TransportError
from googleapiclient.errors import HttpError

from clinicsync.core.exceptions import (
    CalendarCredentialExpiredError,
    CalendarTransientError,
    CalendarUnknownError,
    ExternalServiceError,
)

_TRANSIENT_STATUSES = {408, 429, 500, 502, 503, 504}
_QUOTA_REASONS = ("rateLimitExceeded", "userRateLimitExceeded", "quotaExceeded")


def http_status(exc: HttpError) -> int:
    status = getattr(exc, "status_code", None) or getattr(exc.resp, "status", 0)
    return int(status or 0)


def _error_body(exc: HttpError) -> str:
    content = exc.content
    if isinstance(content, bytes):
        return content.decode("utf-8", "replace")
    return str(content or "")


def classify_calendar_error(exc: BaseException, *, operation: str = "calendar call") -> ExternalServiceError:
    """Return the ExternalServiceError subclass matching *exc* (chained as cause)."""
    if isinstance(exc, ExternalServiceError):
        return exc

    message = f"{operation} failed: {exc}"

    if isinstance(exc, RefreshError) or "invalid_grant" in str(exc) or (
        isinstance(exc, HttpError) and "invalid_grant" in _error_body(exc)
    ):
        return CalendarCredentialExpiredError(
            f"{operation} failed: calendar authorization expired, reconnect the Google account",
            cause=exc,
        )

    if isinstance(exc, HttpError):
        status = http_status(exc)
        if status == 401:
            return CalendarCredentialExpiredError(
                f"{operation} failed: calendar authorization rejected (HTTP 401)",
                details={"status": status},
                cause=exc,
            )
        if status in _TRANSIENT_STATUSES or (
            status == 403 and any(reason in _error_body(exc) for reason in _QUOTA_REASONS)
        ):
            return CalendarTransientError(message, details={"status": status}, cause=exc)
        return CalendarUnknownError(message, details={"status": status}, cause=exc)

    if isinstance(exc, (asyncio.TimeoutError, TimeoutError)):
        return CalendarTransientError(f"{operation} timed out", cause=exc)

    if isinstance(exc, (TransportError, httplib2.HttpLib2Error, OSError)):
        return CalendarTransientError(message, cause=exc)

    return CalendarUnknownError(message, cause=exc)
