"""Application services: each one is built per request from an AsyncSession."""
from clinicsync.services.appointment_service import AppointmentService
from clinicsync.services.block_service import BlockService
from clinicsync.services.notification_service import NotificationSink
from clinicsync.services.reconciliation_service import ReconciliationService

__all__ = [
    "AppointmentService",
    "BlockService",
    "NotificationSink",
    "ReconciliationService",
]
