"""Appointments API: schedule, list, availability, get and cancel."""
from __future__ import annotations

import datetime as _dt
import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from clinicsync.api.dependencies import get_appointment_service, get_current_owner
from clinicsync.api.schemas.appointments import (
    AppointmentCreate,
    AppointmentResponse,
    AvailabilityResponse,
)
from clinicsync.scheduling import time_model
from clinicsync.scheduling.types import AppointmentOrigin, AppointmentRequest
from clinicsync.services import AppointmentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/appointments", tags=["appointments"])


def to_response(appointment, warning: Optional[str] = None) -> AppointmentResponse:
    return AppointmentResponse.model_validate(appointment).model_copy(update={"sync_warning": warning})


def to_request(body: AppointmentCreate, external_event_id: Optional[str] = None) -> AppointmentRequest:
    return AppointmentRequest(
        subject_name=body.subject_name,
        subject_phone=body.subject_phone,
        subject_email=body.subject_email or None,
        start_at=time_model.parse_instant(body.start_at),
        kind=body.kind,
        notes=body.notes,
        external_event_id=external_event_id,
    )


@router.post("", response_model=AppointmentResponse, status_code=201)
async def create_appointment(
    body: AppointmentCreate,
    owner_id: UUID = Depends(get_current_owner),
    svc: AppointmentService = Depends(get_appointment_service),
):
    appointment, warning = await svc.schedule(owner_id, to_request(body), AppointmentOrigin.MANUAL)
    return to_response(appointment, warning)


@router.get("", response_model=List[AppointmentResponse])
async def list_appointments(
    date: Optional[str] = Query(None, description="Clinic day, YYYY-MM-DD"),
    status: Optional[str] = Query(None, description="confirmed | cancelled"),
    skip: int = Query(0, ge=0),
    limit: int = Query(500, ge=1, le=1000),
    owner_id: UUID = Depends(get_current_owner),
    svc: AppointmentService = Depends(get_appointment_service),
):
    day = time_model.parse_date(date) if date else None
    rows = await svc.list_appointments(owner_id, day=day, status=status, skip=skip, limit=limit)
    return [to_response(r) for r in rows]


@router.get("/availability", response_model=AvailabilityResponse)
async def get_availability(
    date: Optional[str] = Query(None, description="Clinic day, YYYY-MM-DD (default today)"),
    owner_id: UUID = Depends(get_current_owner),
    svc: AppointmentService = Depends(get_appointment_service),
):
    day: _dt.date = time_model.parse_date(date) if date else time_model.today()
    slots = await svc.availability(owner_id, day)
    return AvailabilityResponse(date=day, slots=slots)


@router.get("/{appointment_id}", response_model=AppointmentResponse)
async def get_appointment(
    appointment_id: UUID,
    owner_id: UUID = Depends(get_current_owner),
    svc: AppointmentService = Depends(get_appointment_service),
):
    return to_response(await svc.get(owner_id, appointment_id))


@router.delete("/{appointment_id}", response_model=AppointmentResponse)
async def cancel_appointment(
    appointment_id: UUID,
    owner_id: UUID = Depends(get_current_owner),
    svc: AppointmentService = Depends(get_appointment_service),
):
    """Soft cancel; the mirrored Google event is removed on a best-effort basis."""
    appointment, warning = await svc.cancel(owner_id, appointment_id)
    return to_response(appointment, warning)
