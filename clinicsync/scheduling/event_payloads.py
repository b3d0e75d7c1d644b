"""Deterministic external-event payloads for appointments and blocks.

Payloads depend only on the record's own fields, so a retried export sends
an equivalent event. The event id is the record id in hex (a valid Calendar
v3 id), which lets the adapter recognise an insert that already landed.
"""
from __future__ import annotations

import datetime as _dt

from clinicsync.scheduling import time_model
from clinicsync.scheduling.types import KIND_LABELS, BlockKind, EventPayload


def kind_label(kind: str) -> str:
    return KIND_LABELS.get(kind, kind)


def appointment_event(appointment) -> EventPayload:
    """Render an Appointment as a 30-minute timed event titled ``"<Kind> - <name>"``."""
    lines = [
        f"Paciente: {appointment.subject_name}",
        f"Telefone: {appointment.subject_phone or ''}",
    ]
    if appointment.subject_email:
        lines.append(f"Email: {appointment.subject_email}")
    if appointment.notes:
        lines.append(f"\nObservações: {appointment.notes}")

    start = time_model.to_clinic(appointment.start_at)
    return EventPayload(
        summary=f"{kind_label(appointment.kind)} - {appointment.subject_name}",
        description="\n".join(lines),
        start_at=start,
        end_at=start + time_model.APPOINTMENT_DURATION,
        all_day=False,
        attendees=[appointment.subject_email] if appointment.subject_email else [],
        event_id=appointment.id.hex,
    )


def block_window(block) -> tuple[_dt.datetime, _dt.datetime]:
    """Clinic-time window a block occupies on the external calendar.

    Full-day blocks render as the 08:00-18:00 working window rather than an
    all-day entry so they show as busy and are never confused with the
    all-day events the importer ignores.
    """
    if block.kind == BlockKind.FULL_DAY.value:
        start, end = time_model.DAY_START, time_model.DAY_END
    else:
        start = block.range_start or time_model.DAY_START
        end = block.range_end or time_model.DAY_END
    return (
        time_model.clinic_datetime(block.date, start),
        time_model.clinic_datetime(block.date, end),
    )


def block_event(block) -> EventPayload:
    full_day = block.kind == BlockKind.FULL_DAY.value
    reason = block.reason or ("Dia bloqueado" if full_day else "Horário bloqueado")
    lines = [f"Tipo: {'Dia Inteiro' if full_day else 'Horário Específico'}"]
    if block.reason:
        lines.append(f"Motivo: {block.reason}")
    lines.append("")
    lines.append("⚠️ Este horário está bloqueado para agendamentos.")

    start, end = block_window(block)
    return EventPayload(
        summary=f"🔒 BLOQUEADO - {reason}",
        description="\n".join(lines),
        start_at=start,
        end_at=end,
        all_day=False,
        event_id=block.id.hex,
    )
