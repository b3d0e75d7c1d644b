"""Google Calendar connection, sync and import.

Env vars required for the OAuth flow:
  GOOGLE_CLIENT_ID: OAuth client ID from Google Cloud Console
  GOOGLE_CLIENT_SECRET: OAuth client secret
  GOOGLE_REDIRECT_URI: e.g. http://localhost:8000/api/v1/google/callback

Flow:
  1. Frontend calls GET /google/auth-url (with X-Owner-Id)
     → returns { url: "https://accounts.google.com/o/oauth2/..." }
  2. User is redirected to Google, grants calendar access
  3. Google redirects to GET /google/callback?code=xxx&state=xxx
     → exchanges code for a refresh token, stores it with the primary
       calendar id, runs one sync pass, redirects to the dashboard
"""
from __future__ import annotations

import hashlib
import hmac
import logging
from typing import Optional
from urllib.parse import urlencode
from uuid import UUID

import httpx
from fastapi import APIRouter, Depends, Query
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from clinicsync.api.dependencies import (
    get_current_owner,
    get_reconciliation_service,
    get_session,
)
from clinicsync.api.schemas.google import (
    AuthUrlResponse,
    ConnectionStatus,
    ImportResponse,
    SyncResponse,
)
from clinicsync.config import GoogleOAuthConfig
from clinicsync.core.exceptions import ProjectError
from clinicsync.infra.database.repositories import CalendarConnectionRepository
from clinicsync.services import ReconciliationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/google", tags=["google"])

_SCOPES = [
    "https://www.googleapis.com/auth/calendar",
    "https://www.googleapis.com/auth/calendar.events",
]
_AUTH_ENDPOINT = "https://accounts.google.com/o/oauth2/v2/auth"
_TOKEN_ENDPOINT = "https://oauth2.googleapis.com/token"
_CALENDAR_LIST_ENDPOINT = "https://www.googleapis.com/calendar/v3/users/me/calendarList"
_HTTP_TIMEOUT = 15


def sign_state(owner_id: UUID, secret: str) -> str:
    """OAuth state = ``<owner_id>.<hmac>`` so the callback can trust the owner id."""
    digest = hmac.new(secret.encode("utf-8"), str(owner_id).encode("utf-8"), hashlib.sha256).hexdigest()
    return f"{owner_id}.{digest[:32]}"


def verify_state(state: str, secret: str) -> Optional[UUID]:
    owner_part, _, _ = state.partition(".")
    try:
        owner_id = UUID(owner_part)
    except ValueError:
        return None
    if not hmac.compare_digest(sign_state(owner_id, secret), state):
        return None
    return owner_id


async def _exchange_code(config: GoogleOAuthConfig, code: str) -> dict:
    async with httpx.AsyncClient(timeout=_HTTP_TIMEOUT) as client:
        resp = await client.post(
            _TOKEN_ENDPOINT,
            data={
                "code": code,
                "client_id": config.client_id,
                "client_secret": config.client_secret,
                "redirect_uri": config.redirect_uri,
                "grant_type": "authorization_code",
            },
        )
    if resp.status_code != 200:
        logger.error("Google token exchange failed: %s", resp.text)
        return {}
    return resp.json()


async def _primary_calendar_id(access_token: str) -> str:
    """Return the primary calendar's id, or ``"primary"`` when it cannot be listed."""
    try:
        async with httpx.AsyncClient(timeout=_HTTP_TIMEOUT) as client:
            resp = await client.get(
                _CALENDAR_LIST_ENDPOINT,
                headers={"Authorization": f"Bearer {access_token}"},
            )
    except httpx.HTTPError as exc:
        logger.warning("Could not list calendars: %s", exc)
        return "primary"
    if resp.status_code != 200:
        logger.warning("Calendar list returned HTTP %d", resp.status_code)
        return "primary"
    items = resp.json().get("items", [])
    primary = next((c for c in items if c.get("primary")), items[0] if items else None)
    return (primary or {}).get("id") or "primary"


@router.get("/auth-url", response_model=AuthUrlResponse)
async def get_auth_url(owner_id: UUID = Depends(get_current_owner)):
    config = GoogleOAuthConfig.from_env()
    params = {
        "client_id": config.client_id,
        "redirect_uri": config.redirect_uri,
        "response_type": "code",
        "scope": " ".join(_SCOPES),
        "access_type": "offline",
        "prompt": "consent",
        "state": sign_state(owner_id, config.client_secret),
    }
    return AuthUrlResponse(url=f"{_AUTH_ENDPOINT}?{urlencode(params)}")


@router.get("/callback")
async def oauth_callback(
    code: Optional[str] = Query(None),
    state: str = Query(""),
    error: Optional[str] = Query(None),
    session: AsyncSession = Depends(get_session),
    sync_svc: ReconciliationService = Depends(get_reconciliation_service),
):
    """Store the refresh token for the owner named in ``state``, then run one sync pass."""
    config = GoogleOAuthConfig.from_env()
    dashboard = f"{config.frontend_url}/dashboard"
    if error:
        logger.warning("Google OAuth error: %s", error)
        return RedirectResponse(f"{dashboard}?{urlencode({'google': 'error', 'message': error})}")
    if not code:
        return RedirectResponse(f"{dashboard}?google=error&message=no_code")

    owner_id = verify_state(state, config.client_secret)
    if owner_id is None:
        return RedirectResponse(f"{dashboard}?google=error&message=invalid_state")

    token_data = await _exchange_code(config, code)
    if not token_data:
        return RedirectResponse(f"{dashboard}?google=error&message=token_exchange_failed")
    refresh_token = token_data.get("refresh_token")
    if not refresh_token:
        return RedirectResponse(f"{dashboard}?google=error&message=no_refresh_token")

    calendar_id = await _primary_calendar_id(token_data.get("access_token", ""))
    await CalendarConnectionRepository(session).save(
        owner_id, refresh_token=refresh_token, calendar_id=calendar_id,
    )
    await session.commit()
    logger.info("Google OAuth: connected calendar %s for owner %s", calendar_id, owner_id)

    try:
        report = await sync_svc.sync(owner_id)
        logger.info("Initial sync for owner %s: %s", owner_id, report.to_dict())
    except ProjectError as exc:
        logger.warning("Initial sync for owner %s failed: %s", owner_id, exc.code)

    return RedirectResponse(f"{dashboard}?google=success")


@router.get("/status", response_model=ConnectionStatus)
async def get_status(
    owner_id: UUID = Depends(get_current_owner),
    session: AsyncSession = Depends(get_session),
):
    conn = await CalendarConnectionRepository(session).get_for_owner_id(owner_id)
    connected = bool(conn and conn.refresh_token and conn.calendar_id)
    return ConnectionStatus(connected=connected, calendar_id=conn.calendar_id if conn else None)


@router.delete("/status", response_model=ConnectionStatus)
async def disconnect(
    owner_id: UUID = Depends(get_current_owner),
    session: AsyncSession = Depends(get_session),
):
    await CalendarConnectionRepository(session).remove(owner_id)
    await session.commit()
    logger.info("Google Calendar disconnected for owner %s", owner_id)
    return ConnectionStatus(connected=False)


@router.post("/sync", response_model=SyncResponse)
async def sync_calendar(
    owner_id: UUID = Depends(get_current_owner),
    svc: ReconciliationService = Depends(get_reconciliation_service),
):
    """Export unsynced records, then import new events from the default window."""
    report = await svc.sync(owner_id)
    return SyncResponse(**report.to_dict())


@router.post("/import", response_model=ImportResponse)
async def import_calendar(
    owner_id: UUID = Depends(get_current_owner),
    svc: ReconciliationService = Depends(get_reconciliation_service),
):
    report = await svc.import_events(owner_id)
    return ImportResponse(**report.to_dict())
