"""Per-owner adapter construction from SyncConfig."""
from __future__ import annotations

import logging
from typing import Optional
from uuid import UUID

from clinicsync.config import SyncConfig
from clinicsync.infra.calendar.base import CalendarAdapter
from clinicsync.infra.calendar.google import GoogleCalendarAdapter

logger = logging.getLogger(__name__)


class CalendarAdapterFactory:
    def __init__(self, config: SyncConfig) -> None:
        self._config = config

    async def for_owner(self, owner_id: UUID) -> Optional[CalendarAdapter]:
        """Return an adapter bound to the owner's calendar, or None when not connected."""
        provider = self._config.credential_provider
        if provider is None:
            return None
        credentials = await provider.get_credentials(owner_id)
        if credentials is None:
            logger.debug("No calendar connection for owner %s", owner_id)
            return None
        return GoogleCalendarAdapter(
            credentials,
            timeout=self._config.request_timeout,
            api_base_url=self._config.external_api_base_url,
        )
