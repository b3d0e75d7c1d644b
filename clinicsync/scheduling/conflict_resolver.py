"""ConflictResolver: the single admission path for appointments and blocks.

Every confirmed appointment enters the store through ``admit`` (dashboard,
automation webhook) or through the importer, which takes the same per-owner
lock. Rejections are raised as ``ConflictError`` subclasses.
"""
from __future__ import annotations

import datetime as _dt
import logging
from typing import Iterable, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from clinicsync.core.exceptions import (
    ConflictError,
    DayBlockedError,
    SlotBlockedError,
    SlotTakenError,
    ValidationError,
)
from clinicsync.infra.database.models import Appointment, Block
from clinicsync.infra.database.repositories import AppointmentRepository, BlockRepository
from clinicsync.scheduling import time_model
from clinicsync.scheduling.locks import OwnerLocks, owner_locks
from clinicsync.scheduling.types import (
    AppointmentOrigin,
    AppointmentRequest,
    AppointmentStatus,
    BlockKind,
    BlockRequest,
)

logger = logging.getLogger(__name__)


def check_blocks(blocks: Iterable[Block], start_at: _dt.datetime) -> None:
    """Raise DayBlockedError / SlotBlockedError if *start_at* falls in an active block."""
    day = time_model.clinic_day(start_at)
    t = time_model.clinic_time_of_day(start_at)
    active = [b for b in blocks if b.active]
    for block in active:
        if block.kind == BlockKind.FULL_DAY.value:
            raise DayBlockedError(
                f"{day.isoformat()} is blocked",
                details={"block_id": str(block.id), "date": day.isoformat()},
            )
    for block in active:
        if block.kind != BlockKind.TIME_RANGE.value:
            continue
        if block.range_start is None or block.range_end is None:
            continue
        if time_model.time_in_range(t, block.range_start, block.range_end):
            raise SlotBlockedError(
                f"{t.strftime('%H:%M')} on {day.isoformat()} falls inside a blocked range",
                details={
                    "block_id": str(block.id),
                    "range_start": block.range_start.strftime("%H:%M"),
                    "range_end": block.range_end.strftime("%H:%M"),
                },
            )


def _is_external_id_violation(exc: IntegrityError) -> bool:
    return "external_event" in str(exc.orig or exc)


class ConflictResolver:
    def __init__(self, session: AsyncSession, locks: Optional[OwnerLocks] = None) -> None:
        self._session = session
        self._appointments = AppointmentRepository(session)
        self._blocks = BlockRepository(session)
        self._locks = locks if locks is not None else owner_locks

    async def admit(
        self,
        owner_id: UUID,
        request: AppointmentRequest,
        origin: AppointmentOrigin = AppointmentOrigin.MANUAL,
    ) -> Appointment:
        """Check blocks and slot occupancy, then persist a confirmed appointment.

        The read-check-write-commit sequence runs under the owner's lock; the
        partial unique index covers writers in other processes.
        """
        _validate_request(request)
        start_at = time_model.to_clinic(request.start_at)
        day = time_model.clinic_day(start_at)

        async with self._locks.hold(owner_id):
            blocks = await self._blocks.list_active_for_day(owner_id, day)
            check_blocks(blocks, start_at)

            taken = await self._appointments.find_confirmed_at(owner_id, start_at)
            if taken is not None:
                raise SlotTakenError(
                    f"{start_at.isoformat()} is already booked",
                    details={"appointment_id": str(taken.id)},
                )

            if request.external_event_id:
                existing = await self._appointments.get_by_external_id(owner_id, request.external_event_id)
                if existing is not None:
                    raise ConflictError(
                        "An appointment already mirrors this external event",
                        code="DUPLICATE_EXTERNAL_EVENT",
                        details={"appointment_id": str(existing.id)},
                    )

            try:
                appointment = await self._appointments.create({
                    "owner_id": owner_id,
                    "subject_name": request.subject_name.strip(),
                    "subject_phone": (request.subject_phone or "").strip(),
                    "subject_email": request.subject_email or None,
                    "start_at": start_at,
                    "kind": request.kind,
                    "notes": request.notes or None,
                    "origin": AppointmentOrigin(origin).value,
                    "status": AppointmentStatus.CONFIRMED.value,
                    "external_event_id": request.external_event_id or None,
                })
                await self._session.commit()
            except IntegrityError as exc:
                await self._session.rollback()
                if _is_external_id_violation(exc):
                    raise ConflictError(
                        "An appointment already mirrors this external event",
                        code="DUPLICATE_EXTERNAL_EVENT",
                        cause=exc,
                    ) from exc
                raise SlotTakenError(
                    f"{start_at.isoformat()} is already booked", cause=exc,
                ) from exc

        logger.info(
            "Appointment admitted: id=%s owner=%s start=%s origin=%s",
            appointment.id, owner_id, start_at.isoformat(), appointment.origin,
        )
        return appointment

    async def admit_block(self, owner_id: UUID, request: BlockRequest) -> Block:
        """Validate and persist a block.

        Existing confirmed appointments inside the new block stay confirmed.
        """
        kind, range_start, range_end = _validate_block(request)

        async with self._locks.hold(owner_id):
            block = await self._blocks.create({
                "owner_id": owner_id,
                "kind": kind.value,
                "date": request.date,
                "range_start": range_start,
                "range_end": range_end,
                "reason": (request.reason or "").strip() or None,
                "active": True,
            })
            await self._session.commit()

        logger.info(
            "Block admitted: id=%s owner=%s date=%s kind=%s",
            block.id, owner_id, request.date.isoformat(), kind.value,
        )
        return block

    async def available_slots(self, owner_id: UUID, day: _dt.date) -> List[_dt.datetime]:
        """Slot-grid start instants on *day* that are neither blocked nor taken."""
        blocks = await self._blocks.list_active_for_day(owner_id, day)
        booked = await self._appointments.list_for_owner(
            owner_id, day=day, status=AppointmentStatus.CONFIRMED.value,
        )
        taken = {time_model.to_clinic(a.start_at) for a in booked}

        free: List[_dt.datetime] = []
        for slot in time_model.slot_grid(day):
            if slot in taken:
                continue
            try:
                check_blocks(blocks, slot)
            except ConflictError:
                continue
            free.append(slot)
        return free


def _validate_request(request: AppointmentRequest) -> None:
    if not (request.subject_name or "").strip():
        raise ValidationError("subject_name is required")
    if not (request.kind or "").strip():
        raise ValidationError("kind is required")
    if request.start_at is None:
        raise ValidationError("start_at is required")


def _validate_block(request: BlockRequest) -> Tuple[BlockKind, Optional[_dt.time], Optional[_dt.time]]:
    """Return the kind and the range bounds as naive clinic wall times."""
    try:
        kind = BlockKind(request.kind)
    except ValueError as exc:
        raise ValidationError(
            f"Invalid block kind {request.kind!r}; expected 'full-day' or 'time-range'",
            details={"kind": request.kind},
            cause=exc,
        ) from exc
    if request.date is None:
        raise ValidationError("date is required")
    if kind is BlockKind.FULL_DAY:
        return kind, None, None
    if request.range_start is None or request.range_end is None:
        raise ValidationError("range_start and range_end are required for time-range blocks")
    range_start = time_model.wall_time_of_day(request.date, request.range_start)
    range_end = time_model.wall_time_of_day(request.date, request.range_end)
    if range_start >= range_end:
        raise ValidationError(
            "range_start must be before range_end",
            details={
                "range_start": range_start.strftime("%H:%M"),
                "range_end": range_end.strftime("%H:%M"),
            },
        )
    return kind, range_start, range_end
