"""Pydantic schemas for the blocks API."""
from __future__ import annotations

import datetime as _dt
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class BlockCreate(BaseModel):
    kind: str = Field(..., description="full-day | time-range")
    date: _dt.date
    range_start: Optional[_dt.time] = None
    range_end: Optional[_dt.time] = None
    reason: Optional[str] = Field(None, max_length=500)


class AutomationBlockCreate(BlockCreate):
    owner_id: UUID


class AutomationBlockRemove(BaseModel):
    owner_id: UUID
    block_id: UUID


class BlockResponse(BaseModel):
    model_config = {"from_attributes": True}

    id: UUID
    owner_id: UUID
    kind: str
    date: _dt.date
    range_start: Optional[_dt.time] = None
    range_end: Optional[_dt.time] = None
    reason: Optional[str] = None
    active: bool
    external_event_id: Optional[str] = None
    created_at: Optional[_dt.datetime] = None
    sync_warning: Optional[str] = None
