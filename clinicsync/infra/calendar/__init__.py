"""External calendar adapters (Google Calendar v3)."""
from clinicsync.infra.calendar.base import (
    CalendarAdapter,
    CalendarCredentials,
    CredentialProvider,
    StoredCredentialProvider,
)
from clinicsync.infra.calendar.errors import classify_calendar_error
from clinicsync.infra.calendar.factory import CalendarAdapterFactory
from clinicsync.infra.calendar.google import GoogleCalendarAdapter

__all__ = [
    "CalendarAdapter",
    "CalendarAdapterFactory",
    "CalendarCredentials",
    "CredentialProvider",
    "GoogleCalendarAdapter",
    "StoredCredentialProvider",
    "classify_calendar_error",
]
