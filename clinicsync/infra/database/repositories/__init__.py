"""Repositories for the clinicsync database."""
from clinicsync.infra.database.repositories.appointment import AppointmentRepository
from clinicsync.infra.database.repositories.base import BaseRepository
from clinicsync.infra.database.repositories.block import BlockRepository
from clinicsync.infra.database.repositories.calendar_connection import CalendarConnectionRepository

__all__ = [
    "BaseRepository",
    "AppointmentRepository",
    "BlockRepository",
    "CalendarConnectionRepository",
]
