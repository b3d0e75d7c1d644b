"""Core data structures shared by the resolver, the services and the sync engine."""
from __future__ import annotations

import datetime as _dt
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class AppointmentStatus(str, Enum):
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class AppointmentOrigin(str, Enum):
    MANUAL = "manual"
    IMPORTED = "imported"
    EXTERNAL_AUTOMATION = "external-automation"


class BlockKind(str, Enum):
    FULL_DAY = "full-day"
    TIME_RANGE = "time-range"


class AppointmentKind(str, Enum):
    """Known appointment categories. ``kind`` columns accept any other string too."""
    CONSULTA = "consulta"
    RETORNO = "retorno"
    PROCEDIMENTO = "procedimento"
    AVALIACAO = "avaliacao"
    EMERGENCIA = "emergencia"


KIND_LABELS: Dict[str, str] = {
    AppointmentKind.CONSULTA.value: "Consulta",
    AppointmentKind.RETORNO.value: "Retorno",
    AppointmentKind.PROCEDIMENTO.value: "Procedimento",
    AppointmentKind.AVALIACAO.value: "Avaliação",
    AppointmentKind.EMERGENCIA.value: "Emergência",
}


@dataclass(frozen=True)
class AppointmentRequest:
    """A validated scheduling request (transport-agnostic)."""

    subject_name: str
    subject_phone: str
    start_at: _dt.datetime
    kind: str
    subject_email: Optional[str] = None
    notes: Optional[str] = None
    external_event_id: Optional[str] = None
    """Only set by automation callers that already created the external event."""


@dataclass(frozen=True)
class BlockRequest:
    kind: str
    date: _dt.date
    range_start: Optional[_dt.time] = None
    range_end: Optional[_dt.time] = None
    reason: Optional[str] = None


@dataclass
class EventPayload:
    """Everything the calendar adapter needs to create one event."""

    summary: str
    description: str
    start_at: _dt.datetime
    end_at: _dt.datetime
    all_day: bool = False
    attendees: List[str] = field(default_factory=list)
    event_id: Optional[str] = None
    """Client-supplied event id; a retried insert with the same id is a no-op."""


@dataclass(frozen=True)
class ExternalEvent:
    """One event as listed by the calendar adapter.

    Timed events carry ``start_at``; all-day events carry only ``start_date``.
    """

    external_id: str
    title: str = ""
    start_at: Optional[_dt.datetime] = None
    start_date: Optional[_dt.date] = None
    description: Optional[str] = None
    attendee_emails: List[str] = field(default_factory=list)

    @property
    def is_all_day(self) -> bool:
        return self.start_at is None and self.start_date is not None


@dataclass
class EntityCounts:
    exported: int = 0
    failed: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {"exported": self.exported, "failed": self.failed}


@dataclass
class ExportReport:
    appointments: EntityCounts = field(default_factory=EntityCounts)
    blocks: EntityCounts = field(default_factory=EntityCounts)
    warnings: List[str] = field(default_factory=list)
    credential_expired: bool = False

    @property
    def failed(self) -> int:
        return self.appointments.failed + self.blocks.failed

    def to_dict(self) -> Dict[str, Any]:
        return {
            "appointments": self.appointments.to_dict(),
            "blocks": self.blocks.to_dict(),
            "warnings": list(self.warnings),
            "credential_expired": self.credential_expired,
        }


@dataclass
class ImportReport:
    imported: int = 0
    skipped: int = 0
    failed: int = 0
    total: int = 0
    warnings: List[str] = field(default_factory=list)
    credential_expired: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "imported": self.imported,
            "skipped": self.skipped,
            "errors": self.failed,
            "total": self.total,
            "warnings": list(self.warnings),
            "credential_expired": self.credential_expired,
        }


@dataclass
class SyncReport:
    """Drift-repair pass: export then import."""

    export: ExportReport
    import_: ImportReport

    @property
    def credential_expired(self) -> bool:
        return self.export.credential_expired or self.import_.credential_expired

    def to_dict(self) -> Dict[str, Any]:
        return {
            "exported_appointments": self.export.appointments.exported,
            "exported_blocks": self.export.blocks.exported,
            "export_failures": self.export.failed,
            "imported": self.import_.imported,
            "skipped": self.import_.skipped,
            "import_failures": self.import_.failed,
            "warnings": self.export.warnings + self.import_.warnings,
            "credential_expired": self.credential_expired,
        }
