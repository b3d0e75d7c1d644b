"""Block ORM: a blackout period (whole day or time range) on the owner's agenda."""

import datetime as _dt
import uuid
from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, Date, Index, String, Text, Time, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from clinicsync.infra.database.models.base import Base, TimestampMixin, _uuid_pk


class Block(Base, TimestampMixin):
    """
    kind: "full-day" | "time-range"
    range_start/range_end are clinic wall-clock times, set only for time-range blocks.
    Removal sets active=False; rows are never deleted.
    """

    __tablename__ = "blocks"
    __table_args__ = (
        Index("ix_blocks_owner_date_active", "owner_id", "date", "active"),
        Index(
            "uq_blocks_owner_external_event",
            "owner_id",
            "external_event_id",
            unique=True,
            postgresql_where=text("external_event_id IS NOT NULL"),
        ),
        CheckConstraint(
            "range_start IS NULL OR range_end IS NULL OR range_start < range_end",
            name="ck_blocks_range_order",
        ),
    )

    id: Mapped[uuid.UUID] = _uuid_pk()
    owner_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False, index=True)
    kind: Mapped[str] = mapped_column(String(16), nullable=False)
    date: Mapped[_dt.date] = mapped_column(Date, nullable=False)
    range_start: Mapped[Optional[_dt.time]] = mapped_column(Time, nullable=True)
    range_end: Mapped[Optional[_dt.time]] = mapped_column(Time, nullable=True)
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    external_event_id: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
