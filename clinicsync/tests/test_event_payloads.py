"""Tests for deterministic external-event payloads."""
from __future__ import annotations

import datetime as _dt
from types import SimpleNamespace
from uuid import uuid4

from clinicsync.scheduling import time_model
from clinicsync.scheduling.event_payloads import appointment_event, block_event, kind_label

DAY = _dt.date(2025, 3, 10)


def _appointment(**kwargs):
    defaults = {
        "id": uuid4(),
        "subject_name": "João Silva",
        "subject_phone": "11988887777",
        "subject_email": "joao@example.com",
        "notes": None,
        "kind": "retorno",
        "start_at": time_model.clinic_datetime(DAY, _dt.time(9, 0)),
    }
    defaults.update(kwargs)
    return SimpleNamespace(**defaults)


def _block(**kwargs):
    defaults = {
        "id": uuid4(),
        "kind": "full-day",
        "date": DAY,
        "range_start": None,
        "range_end": None,
        "reason": None,
    }
    defaults.update(kwargs)
    return SimpleNamespace(**defaults)


class TestAppointmentEvent:
    def test_summary_and_duration(self):
        payload = appointment_event(_appointment())
        assert payload.summary == "Retorno - João Silva"
        assert payload.end_at - payload.start_at == _dt.timedelta(minutes=30)
        assert not payload.all_day
        assert payload.attendees == ["joao@example.com"]

    def test_event_id_is_record_id_hex(self):
        appointment = _appointment()
        payload = appointment_event(appointment)
        assert payload.event_id == appointment.id.hex

    def test_description_lines(self):
        payload = appointment_event(_appointment(notes="Trazer exames"))
        lines = payload.description.split("\n")
        assert lines[0] == "Paciente: João Silva"
        assert lines[1] == "Telefone: 11988887777"
        assert lines[2] == "Email: joao@example.com"
        assert payload.description.endswith("Observações: Trazer exames")

    def test_unknown_kind_uses_raw_value(self):
        assert kind_label("massagem") == "massagem"
        payload = appointment_event(_appointment(kind="massagem", subject_email=None))
        assert payload.summary == "massagem - João Silva"
        assert payload.attendees == []

    def test_same_record_gives_same_payload(self):
        appt = _appointment()
        assert appointment_event(appt) == appointment_event(appt)


class TestBlockEvent:
    def test_full_day_renders_working_window(self):
        payload = block_event(_block())
        assert payload.summary == "🔒 BLOQUEADO - Dia bloqueado"
        assert time_model.clinic_time_of_day(payload.start_at) == _dt.time(8, 0)
        assert time_model.clinic_time_of_day(payload.end_at) == _dt.time(18, 0)
        assert not payload.all_day
        assert "Tipo: Dia Inteiro" in payload.description

    def test_time_range_with_reason(self):
        payload = block_event(_block(
            kind="time-range", range_start=_dt.time(12), range_end=_dt.time(14), reason="Almoço",
        ))
        assert payload.summary == "🔒 BLOQUEADO - Almoço"
        assert time_model.clinic_time_of_day(payload.start_at) == _dt.time(12, 0)
        assert time_model.clinic_time_of_day(payload.end_at) == _dt.time(14, 0)
        assert "Motivo: Almoço" in payload.description

    def test_time_range_default_reason(self):
        payload = block_event(_block(kind="time-range", range_start=_dt.time(15), range_end=_dt.time(16)))
        assert payload.summary == "🔒 BLOQUEADO - Horário bloqueado"
