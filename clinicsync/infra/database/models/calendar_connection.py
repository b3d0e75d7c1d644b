"""CalendarConnection ORM: an owner's linked Google Calendar (OAuth refresh token + calendar id)."""
from __future__ import annotations

import uuid

from sqlalchemy import String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from clinicsync.infra.database.models.base import Base, TimestampMixin


class CalendarConnection(Base, TimestampMixin):
    __tablename__ = "calendar_connections"

    owner_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True)
    calendar_id: Mapped[str] = mapped_column(String(512), nullable=False, default="primary")
    refresh_token: Mapped[str] = mapped_column(Text, nullable=False)
