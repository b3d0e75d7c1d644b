"""AppointmentService: schedule, cancel and query appointments for one owner."""
from __future__ import annotations

import datetime as _dt
import logging
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from clinicsync.config import SyncConfig
from clinicsync.core.exceptions import NotFoundError, ValidationError
from clinicsync.infra.calendar import CalendarAdapterFactory
from clinicsync.infra.database.models import Appointment
from clinicsync.infra.database.repositories import AppointmentRepository
from clinicsync.scheduling.conflict_resolver import ConflictResolver
from clinicsync.scheduling.locks import OwnerLocks
from clinicsync.scheduling.types import AppointmentOrigin, AppointmentRequest, AppointmentStatus
from clinicsync.services.notification_service import (
    APPOINTMENT_CANCELLED,
    APPOINTMENT_CREATED,
    NotificationSink,
    appointment_fields,
)
from clinicsync.services.reconciliation_service import ReconciliationService

logger = logging.getLogger(__name__)

_VALID_STATUSES = {s.value for s in AppointmentStatus}


class AppointmentService:
    def __init__(
        self,
        session: AsyncSession,
        config: SyncConfig,
        notifier: Optional[NotificationSink] = None,
        *,
        locks: Optional[OwnerLocks] = None,
        adapter_factory: Optional[CalendarAdapterFactory] = None,
    ) -> None:
        self._repo = AppointmentRepository(session)
        self._resolver = ConflictResolver(session, locks)
        self._sync = ReconciliationService(session, config, adapter_factory=adapter_factory, locks=locks)
        self._notifier = notifier

    async def schedule(
        self,
        owner_id: UUID,
        request: AppointmentRequest,
        origin: AppointmentOrigin = AppointmentOrigin.MANUAL,
    ) -> Tuple[Appointment, Optional[str]]:
        """Admit the request, notify, then try an immediate export.

        Returns ``(appointment, sync_warning)``; the appointment stays
        confirmed even when the export fails.
        """
        appointment = await self._resolver.admit(owner_id, request, origin)
        if self._notifier is not None:
            self._notifier.notify(APPOINTMENT_CREATED, appointment.id, **appointment_fields(appointment))
        warning = await self._sync.export_appointment(appointment)
        return appointment, warning

    async def cancel(self, owner_id: UUID, appointment_id: UUID) -> Tuple[Appointment, Optional[str]]:
        appointment = await self.get(owner_id, appointment_id)
        if appointment.status == AppointmentStatus.CANCELLED.value:
            return appointment, None

        updated = await self._repo.update_status(appointment.id, AppointmentStatus.CANCELLED.value)
        await self._repo.session.commit()
        logger.info("Appointment cancelled: id=%s owner=%s", appointment_id, owner_id)

        if self._notifier is not None:
            self._notifier.notify(APPOINTMENT_CANCELLED, updated.id, **appointment_fields(updated))
        # The external id stays on the row so Import keeps skipping that event
        warning = await self._sync.delete_external(owner_id, updated.external_event_id)
        return updated, warning

    async def get(self, owner_id: UUID, appointment_id: UUID) -> Appointment:
        appointment = await self._repo.get_for_owner(appointment_id, owner_id)
        if appointment is None:
            raise NotFoundError(
                "Appointment not found", details={"appointment_id": str(appointment_id)},
            )
        return appointment

    async def list_appointments(
        self,
        owner_id: UUID,
        *,
        day: Optional[_dt.date] = None,
        status: Optional[str] = None,
        skip: int = 0,
        limit: int = 500,
    ) -> List[Appointment]:
        if status and status not in _VALID_STATUSES:
            raise ValidationError(
                f"Invalid status {status!r}; expected one of {sorted(_VALID_STATUSES)}",
            )
        return await self._repo.list_for_owner(owner_id, day=day, status=status, skip=skip, limit=limit)

    async def availability(self, owner_id: UUID, day: _dt.date) -> List[_dt.datetime]:
        return await self._resolver.available_slots(owner_id, day)
