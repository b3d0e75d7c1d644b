"""Google Calendar v3 adapter.

The client library is synchronous, so every call runs in the default
executor and is bounded by the configured timeout.
"""
from __future__ import annotations

import asyncio
import datetime as _dt
import logging
from typing import Any, Callable, Dict, List, Optional, TypeVar

from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from clinicsync.infra.calendar.base import CalendarAdapter, CalendarCredentials
from clinicsync.infra.calendar.errors import classify_calendar_error, http_status
from clinicsync.scheduling import time_model
from clinicsync.scheduling.types import EventPayload, ExternalEvent

logger = logging.getLogger(__name__)

_SCOPES = ["https://www.googleapis.com/auth/calendar"]
_PAGE_SIZE = 250
_MAX_PAGES = 20

T = TypeVar("T")


def _build_service(credentials: CalendarCredentials, api_base_url: Optional[str] = None):
    """Build a Calendar service from a stored refresh token, refreshing the access token."""
    creds = Credentials(
        token=None,
        refresh_token=credentials.refresh_token,
        token_uri=credentials.token_uri,
        client_id=credentials.client_id,
        client_secret=credentials.client_secret,
        scopes=_SCOPES,
    )
    creds.refresh(Request())
    logger.debug("Google OAuth: access token refreshed")

    kwargs: Dict[str, Any] = {"credentials": creds, "cache_discovery": False}
    if api_base_url:
        kwargs["client_options"] = {"api_endpoint": api_base_url}
    return build("calendar", "v3", **kwargs)


def _event_time(instant: _dt.datetime) -> Dict[str, str]:
    return {
        "dateTime": time_model.to_clinic(instant).isoformat(),
        "timeZone": time_model.CLINIC_TZ_NAME,
    }


def event_body(payload: EventPayload) -> Dict[str, Any]:
    """Translate an EventPayload into a Calendar v3 event resource."""
    if payload.all_day:
        start = {"date": time_model.clinic_day(payload.start_at).isoformat()}
        end = {"date": time_model.clinic_day(payload.end_at).isoformat()}
    else:
        start, end = _event_time(payload.start_at), _event_time(payload.end_at)

    body: Dict[str, Any] = {
        "summary": payload.summary,
        "description": payload.description,
        "start": start,
        "end": end,
        "transparency": "opaque",
        "reminders": {
            "useDefault": False,
            "overrides": [
                {"method": "popup", "minutes": 30},
                {"method": "email", "minutes": 60},
            ],
        },
    }
    if payload.event_id:
        body["id"] = payload.event_id
    if payload.attendees:
        body["attendees"] = [{"email": a} for a in payload.attendees]
    return body


def parse_event(item: Dict[str, Any]) -> ExternalEvent:
    """Build an ExternalEvent from a Calendar v3 event resource."""
    start = item.get("start") or {}
    start_at = time_model.parse_instant(start["dateTime"]) if start.get("dateTime") else None
    start_date = time_model.parse_date(start["date"]) if start.get("date") else None
    return ExternalEvent(
        external_id=item["id"],
        title=item.get("summary") or "",
        start_at=start_at,
        start_date=start_date,
        description=item.get("description"),
        attendee_emails=[a["email"] for a in item.get("attendees", []) if a.get("email")],
    )


class GoogleCalendarAdapter(CalendarAdapter):
    def __init__(
        self,
        credentials: CalendarCredentials,
        *,
        timeout: float = 15.0,
        api_base_url: Optional[str] = None,
        service: Any = None,
    ) -> None:
        self._credentials = credentials
        self.calendar_id = credentials.calendar_id
        self._timeout = timeout
        self._api_base_url = api_base_url
        self._service = service

    def _get_service(self):
        if self._service is None:
            self._service = _build_service(self._credentials, self._api_base_url)
        return self._service

    async def _run(self, operation: str, fn: Callable[[Any], T]) -> T:
        loop = asyncio.get_running_loop()
        try:
            return await asyncio.wait_for(
                loop.run_in_executor(None, lambda: fn(self._get_service())),
                timeout=self._timeout,
            )
        except Exception as exc:
            error = classify_calendar_error(exc, operation=operation)
            logger.warning("%s failed: %s", operation, error.code)
            raise error from exc

    async def create_event(self, payload: EventPayload) -> str:
        body = event_body(payload)

        def _insert(service) -> Dict[str, Any]:
            try:
                return service.events().insert(
                    calendarId=self.calendar_id, body=body, sendUpdates="all",
                ).execute()
            except HttpError as exc:
                # 409 on a client-supplied id: an earlier insert with this id already landed
                if payload.event_id and http_status(exc) == 409:
                    logger.info("Calendar event %s already exists", payload.event_id)
                    return {"id": payload.event_id}
                raise

        event = await self._run("create_event", _insert)
        logger.info("Calendar event created: id=%s summary=%r", event.get("id"), payload.summary)
        return event["id"]

    async def delete_event(self, external_id: str) -> None:
        def _delete(service) -> None:
            try:
                service.events().delete(
                    calendarId=self.calendar_id, eventId=external_id, sendUpdates="all",
                ).execute()
            except HttpError as exc:
                if http_status(exc) in (404, 410):
                    logger.info("Calendar event %s already gone", external_id)
                    return
                raise

        await self._run("delete_event", _delete)

    async def list_events(self, time_min: _dt.datetime, time_max: _dt.datetime) -> List[ExternalEvent]:
        def _list(service) -> List[Dict[str, Any]]:
            items: List[Dict[str, Any]] = []
            page_token: Optional[str] = None
            for _ in range(_MAX_PAGES):
                kwargs: Dict[str, Any] = {
                    "calendarId": self.calendar_id,
                    "timeMin": time_model.to_clinic(time_min).isoformat(),
                    "timeMax": time_model.to_clinic(time_max).isoformat(),
                    "singleEvents": True,
                    "orderBy": "startTime",
                    "maxResults": _PAGE_SIZE,
                }
                if page_token:
                    kwargs["pageToken"] = page_token
                result = service.events().list(**kwargs).execute()
                items.extend(result.get("items", []))
                page_token = result.get("nextPageToken")
                if not page_token:
                    break
            return items

        items = await self._run("list_events", _list)
        return [parse_event(item) for item in items if item.get("id")]
