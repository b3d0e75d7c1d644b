"""Calendar adapter interface and credential resolution.

The reconciliation engine only ever talks to a ``CalendarAdapter``: one
owner's credential bound to one calendar id.
"""
from __future__ import annotations

import datetime as _dt
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional
from uuid import UUID

from clinicsync.scheduling.types import EventPayload, ExternalEvent

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from clinicsync.config import GoogleOAuthConfig

logger = logging.getLogger(__name__)

GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"


@dataclass(frozen=True)
class CalendarCredentials:
    refresh_token: str
    calendar_id: str = "primary"
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    token_uri: str = GOOGLE_TOKEN_URI


class CalendarAdapter(ABC):
    @abstractmethod
    async def create_event(self, payload: EventPayload) -> str:
        """Create the event and return its external id."""

    @abstractmethod
    async def delete_event(self, external_id: str) -> None:
        """Delete an event; an already-missing event is not an error."""

    @abstractmethod
    async def list_events(self, time_min: _dt.datetime, time_max: _dt.datetime) -> List[ExternalEvent]:
        ...


class CredentialProvider(ABC):
    @abstractmethod
    async def get_credentials(self, owner_id: UUID) -> Optional[CalendarCredentials]:
        """Return the owner's calendar credentials, or None when not connected."""


class StoredCredentialProvider(CredentialProvider):
    """Reads refresh tokens saved by the OAuth callback (``calendar_connections``)."""

    def __init__(
        self,
        session_factory: "async_sessionmaker[AsyncSession]",
        oauth: Optional["GoogleOAuthConfig"] = None,
    ) -> None:
        self._session_factory = session_factory
        self._oauth = oauth

    async def get_credentials(self, owner_id: UUID) -> Optional[CalendarCredentials]:
        from clinicsync.infra.database.repositories import CalendarConnectionRepository

        async with self._session_factory() as session:
            conn = await CalendarConnectionRepository(session).get_for_owner_id(owner_id)
        if conn is None or not conn.refresh_token:
            return None
        return CalendarCredentials(
            refresh_token=conn.refresh_token,
            calendar_id=conn.calendar_id or "primary",
            client_id=self._oauth.client_id if self._oauth else None,
            client_secret=self._oauth.client_secret if self._oauth else None,
        )
