"""Pydantic schemas for Google Calendar sync, import and connection status."""
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class SyncResponse(BaseModel):
    exported_appointments: int
    exported_blocks: int
    export_failures: int
    imported: int
    skipped: int
    import_failures: int
    warnings: List[str] = Field(default_factory=list)
    credential_expired: bool = False


class ImportResponse(BaseModel):
    imported: int
    skipped: int
    errors: int
    total: int
    warnings: List[str] = Field(default_factory=list)
    credential_expired: bool = False


class ConnectionStatus(BaseModel):
    connected: bool
    calendar_id: Optional[str] = None


class AuthUrlResponse(BaseModel):
    url: str
