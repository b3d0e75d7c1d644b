"""Appointment ORM model."""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Index, String, Text, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from clinicsync.infra.database.models.base import Base, TimestampMixin, _uuid_pk


class Appointment(Base, TimestampMixin):
    """A booked slot. Cancelled rows are kept so their external id keeps blocking re-import."""

    __tablename__ = "appointments"
    __table_args__ = (
        Index("ix_appointments_owner_start", "owner_id", "start_at"),
        # At most one confirmed appointment per owner and instant
        Index(
            "uq_appointments_owner_start_confirmed",
            "owner_id",
            "start_at",
            unique=True,
            postgresql_where=text("status = 'confirmed'"),
        ),
        # External event id is the import/export idempotency key
        Index(
            "uq_appointments_owner_external_event",
            "owner_id",
            "external_event_id",
            unique=True,
            postgresql_where=text("external_event_id IS NOT NULL"),
        ),
    )

    id: Mapped[uuid.UUID] = _uuid_pk()
    owner_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False, index=True)

    subject_name: Mapped[str] = mapped_column(Text, nullable=False)
    subject_phone: Mapped[str] = mapped_column(String(32), nullable=False, default="")
    subject_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    start_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    kind: Mapped[str] = mapped_column(String(64), nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    origin: Mapped[str] = mapped_column(String(32), nullable=False, default="manual")
    # manual | imported | external-automation
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="confirmed")
    # confirmed | cancelled

    external_event_id: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
