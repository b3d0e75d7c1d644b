"""Pydantic schemas for the appointments API."""
from __future__ import annotations

import datetime as _dt
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class AppointmentCreate(BaseModel):
    subject_name: str = Field(..., min_length=1, max_length=255)
    subject_phone: str = Field(..., min_length=1, max_length=32)
    subject_email: Optional[str] = Field(None, max_length=255)
    start_at: _dt.datetime = Field(..., description="ISO-8601; naive values are clinic wall time")
    kind: str = Field(..., min_length=1, max_length=64, description="consulta, retorno, procedimento, ...")
    notes: Optional[str] = None


class AutomationAppointmentCreate(AppointmentCreate):
    """Automation callers name the owner in the body and may pass an event they already created."""

    owner_id: UUID
    external_event_id: Optional[str] = Field(None, max_length=1024)


class AppointmentResponse(BaseModel):
    model_config = {"from_attributes": True}

    id: UUID
    owner_id: UUID
    subject_name: str
    subject_phone: str
    subject_email: Optional[str] = None
    start_at: _dt.datetime
    kind: str
    notes: Optional[str] = None
    origin: str
    status: str
    external_event_id: Optional[str] = None
    created_at: Optional[_dt.datetime] = None
    updated_at: Optional[_dt.datetime] = None
    sync_warning: Optional[str] = None


class AvailabilityResponse(BaseModel):
    date: _dt.date
    slots: List[_dt.datetime]
