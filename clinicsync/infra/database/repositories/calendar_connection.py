"""CalendarConnection repository: one row per connected owner."""
from __future__ import annotations

from typing import Optional
from uuid import UUID

from sqlalchemy import delete as sa_delete

from clinicsync.infra.database.models.calendar_connection import CalendarConnection
from clinicsync.infra.database.repositories.base import BaseRepository


class CalendarConnectionRepository(BaseRepository[CalendarConnection]):
    model = CalendarConnection

    async def get_for_owner_id(self, owner_id: UUID) -> Optional[CalendarConnection]:
        return await self.session.get(CalendarConnection, owner_id)

    async def save(self, owner_id: UUID, *, refresh_token: str, calendar_id: str) -> CalendarConnection:
        existing = await self.get_for_owner_id(owner_id)
        if existing is None:
            return await self.create(
                {"owner_id": owner_id, "refresh_token": refresh_token, "calendar_id": calendar_id}
            )
        existing.refresh_token = refresh_token
        existing.calendar_id = calendar_id
        await self.session.flush()
        return existing

    async def remove(self, owner_id: UUID) -> int:
        stmt = (
            sa_delete(CalendarConnection)
            .where(CalendarConnection.owner_id == owner_id)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount
