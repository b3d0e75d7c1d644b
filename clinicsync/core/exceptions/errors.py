"""
Built-in exception types: validation, conflicts, lookups and calendar failures.
"""
from __future__ import annotations

from clinicsync.core.exceptions.base import ProjectError


class ConfigurationError(ProjectError):
    """Invalid or missing configuration."""

    default_code = "CONFIGURATION_ERROR"
    default_http_status = 500


class ValidationError(ProjectError):
    """Malformed request; raised before any store access."""

    default_code = "VALIDATION_ERROR"
    default_http_status = 400


class NotFoundError(ProjectError):
    """Record does not exist or does not belong to the caller's owner."""

    default_code = "NOT_FOUND"
    default_http_status = 404


class UnauthorizedError(ProjectError):
    """Missing or invalid caller identity / webhook secret."""

    default_code = "UNAUTHORIZED"
    default_http_status = 401


class ConflictError(ProjectError):
    """Business-rule rejection of a scheduling request."""

    default_code = "CONFLICT"
    default_http_status = 409


class DayBlockedError(ConflictError):
    """The whole clinic day is blocked."""

    default_code = "DAY_BLOCKED"


class SlotBlockedError(ConflictError):
    """The requested time-of-day falls inside a time-range block."""

    default_code = "SLOT_BLOCKED"


class SlotTakenError(ConflictError):
    """Another confirmed appointment already starts at this instant."""

    default_code = "SLOT_TAKEN"


class ExternalServiceError(ProjectError):
    """External calendar call failed."""

    default_code = "EXTERNAL_SERVICE_ERROR"
    default_http_status = 502


class CalendarCredentialExpiredError(ExternalServiceError):
    """Stored OAuth grant was revoked or expired; the owner must reconnect."""

    default_code = "CALENDAR_CREDENTIAL_EXPIRED"
    default_http_status = 401


class CalendarTransientError(ExternalServiceError):
    """Timeout, network failure, quota or 5xx; safe to retry on the next pass."""

    default_code = "CALENDAR_TRANSIENT_ERROR"
    default_http_status = 503


class CalendarUnknownError(ExternalServiceError):
    """Adapter failure that could not be classified."""

    default_code = "CALENDAR_UNKNOWN_ERROR"


class CalendarNotConnectedError(ProjectError):
    """Owner has no calendar connection configured."""

    default_code = "CALENDAR_NOT_CONNECTED"
    default_http_status = 400


class InternalError(ProjectError):
    """Store-layer fault; fatal to the current request only."""

    default_code = "INTERNAL_ERROR"
    default_http_status = 500
