"""
clinicsync exception system.

Usage:
    from clinicsync.core.exceptions import SlotTakenError, ValidationError

    raise ValidationError("range_start must be before range_end", details={"field": "range_start"})

    # Callers can branch on the machine-readable code
    try:
        ...
    except ConflictError as exc:
        exc.code  # "DAY_BLOCKED" | "SLOT_BLOCKED" | "SLOT_TAKEN"
"""
from clinicsync.core.exceptions.base import ProjectError
from clinicsync.core.exceptions.errors import (
    CalendarCredentialExpiredError,
    CalendarNotConnectedError,
    CalendarTransientError,
    CalendarUnknownError,
    ConfigurationError,
    ConflictError,
    DayBlockedError,
    ExternalServiceError,
    InternalError,
    NotFoundError,
    SlotBlockedError,
    SlotTakenError,
    UnauthorizedError,
    ValidationError,
)

__all__ = [
    "ProjectError",
    "ConfigurationError",
    "ValidationError",
    "NotFoundError",
    "UnauthorizedError",
    "ConflictError",
    "DayBlockedError",
    "SlotBlockedError",
    "SlotTakenError",
    "ExternalServiceError",
    "CalendarCredentialExpiredError",
    "CalendarTransientError",
    "CalendarUnknownError",
    "CalendarNotConnectedError",
    "InternalError",
]
