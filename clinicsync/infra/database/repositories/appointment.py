"""Appointment repository."""
from __future__ import annotations

import datetime as _dt
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select

from clinicsync.infra.database.models.appointment import Appointment
from clinicsync.infra.database.repositories.base import BaseRepository
from clinicsync.scheduling import time_model

_CONFIRMED = "confirmed"


class AppointmentRepository(BaseRepository[Appointment]):
    model = Appointment

    async def list_for_owner(
        self,
        owner_id: UUID,
        *,
        day: Optional[_dt.date] = None,
        status: Optional[str] = None,
        skip: int = 0,
        limit: int = 500,
    ) -> List[Appointment]:
        stmt = (
            select(Appointment)
            .where(Appointment.owner_id == owner_id)
            .order_by(Appointment.start_at)
        )
        if day is not None:
            start, end = time_model.day_bounds(day)
            stmt = stmt.where(Appointment.start_at >= start).where(Appointment.start_at < end)
        if status:
            stmt = stmt.where(Appointment.status == status)
        stmt = stmt.offset(skip).limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def find_confirmed_at(self, owner_id: UUID, start_at: _dt.datetime) -> Optional[Appointment]:
        stmt = (
            select(Appointment)
            .where(Appointment.owner_id == owner_id)
            .where(Appointment.start_at == start_at)
            .where(Appointment.status == _CONFIRMED)
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_external_id(self, owner_id: UUID, external_event_id: str) -> Optional[Appointment]:
        """Lookup by idempotency key; cancelled rows count too."""
        stmt = (
            select(Appointment)
            .where(Appointment.owner_id == owner_id)
            .where(Appointment.external_event_id == external_event_id)
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_unsynced(self, owner_id: UUID) -> List[Appointment]:
        """Confirmed appointments never exported (external id unset)."""
        stmt = (
            select(Appointment)
            .where(Appointment.owner_id == owner_id)
            .where(Appointment.status == _CONFIRMED)
            .where(Appointment.external_event_id.is_(None))
            .order_by(Appointment.start_at)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def update_status(self, id: UUID, status: str) -> Optional[Appointment]:
        return await self.update(id, {"status": status})
