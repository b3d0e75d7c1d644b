"""
clinicsync.infra.database.models – SQLAlchemy 2.0 ORM models.

Exports Base, mixins, and all model classes.
"""
from clinicsync.infra.database.models.appointment import Appointment
from clinicsync.infra.database.models.base import Base, TimestampMixin, _uuid_pk
from clinicsync.infra.database.models.block import Block
from clinicsync.infra.database.models.calendar_connection import CalendarConnection

__all__ = [
    "Base",
    "TimestampMixin",
    "_uuid_pk",
    "Appointment",
    "Block",
    "CalendarConnection",
]
