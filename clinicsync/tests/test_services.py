"""Tests for AppointmentService and BlockService with mocked notifier."""
from __future__ import annotations

import asyncio
import datetime as _dt
import unittest
from unittest.mock import MagicMock
from uuid import uuid4

from clinicsync.core.exceptions import NotFoundError, SlotTakenError, ValidationError
from clinicsync.scheduling import time_model
from clinicsync.scheduling.types import AppointmentOrigin, AppointmentRequest, BlockRequest
from clinicsync.tests.fakes import FakeCalendarAdapter, FakeStore, at

DAY = time_model.today() + _dt.timedelta(days=2)


def _run(coro):
    return asyncio.run(coro)


def _request(start_at, **kwargs):
    defaults = {
        "subject_name": "Maria Souza",
        "subject_phone": "11999990000",
        "start_at": start_at,
        "kind": "consulta",
    }
    defaults.update(kwargs)
    return AppointmentRequest(**defaults)


class TestAppointmentServiceSchedule(unittest.TestCase):
    def setUp(self):
        self.adapter = FakeCalendarAdapter()
        self.store = FakeStore(self.adapter)
        self.notifier = MagicMock()
        self.svc = self.store.appointment_service(self.notifier)
        self.owner = uuid4()

    def test_schedule_notifies_and_exports(self):
        appt, warning = _run(self.svc.schedule(self.owner, _request(at(DAY, 9))))

        self.assertIsNone(warning)
        self.assertEqual(appt.external_event_id, "evt-1")
        self.notifier.notify.assert_called_once()
        event, record_id = self.notifier.notify.call_args.args
        self.assertEqual(event, "appointment.created")
        self.assertEqual(record_id, appt.id)
        self.assertEqual(self.notifier.notify.call_args.kwargs["kind"], "consulta")

    def test_export_failure_keeps_appointment_confirmed(self):
        self.adapter.create_errors = [TimeoutError()]
        appt, warning = _run(self.svc.schedule(self.owner, _request(at(DAY, 9))))
        self.assertEqual(appt.status, "confirmed")
        self.assertIsNone(appt.external_event_id)
        self.assertIn("Google Calendar", warning)

    def test_automation_event_id_is_not_exported_again(self):
        appt, _ = _run(self.svc.schedule(
            self.owner,
            _request(at(DAY, 9), external_event_id="made-by-agent"),
            AppointmentOrigin.EXTERNAL_AUTOMATION,
        ))
        self.assertEqual(appt.external_event_id, "made-by-agent")
        self.assertEqual(self.adapter.created, [])

    def test_rejection_sends_no_notification(self):
        _run(self.svc.schedule(self.owner, _request(at(DAY, 9))))
        self.notifier.reset_mock()
        with self.assertRaises(SlotTakenError):
            _run(self.svc.schedule(self.owner, _request(at(DAY, 9), kind="retorno")))
        self.notifier.notify.assert_not_called()

    def test_works_without_notifier_or_calendar(self):
        svc = FakeStore().appointment_service()
        appt, warning = _run(svc.schedule(self.owner, _request(at(DAY, 9))))
        self.assertIsNone(warning)
        self.assertIsNone(appt.external_event_id)


class TestAppointmentServiceCancel(unittest.TestCase):
    def setUp(self):
        self.adapter = FakeCalendarAdapter()
        self.store = FakeStore(self.adapter)
        self.notifier = MagicMock()
        self.svc = self.store.appointment_service(self.notifier)
        self.owner = uuid4()

    def test_cancel_deletes_external_event_and_keeps_id(self):
        appt = self.store.add_appointment(self.owner, at(DAY, 9), external_event_id="g-1")

        updated, warning = _run(self.svc.cancel(self.owner, appt.id))

        self.assertIsNone(warning)
        self.assertEqual(updated.status, "cancelled")
        self.assertEqual(updated.external_event_id, "g-1")
        self.assertEqual(self.adapter.deleted, ["g-1"])
        self.assertEqual(self.notifier.notify.call_args.args[0], "appointment.cancelled")

    def test_cancel_is_idempotent(self):
        appt = self.store.add_appointment(self.owner, at(DAY, 9), status="cancelled")
        updated, warning = _run(self.svc.cancel(self.owner, appt.id))
        self.assertEqual(updated.status, "cancelled")
        self.assertIsNone(warning)
        self.notifier.notify.assert_not_called()

    def test_cancel_other_owner_is_not_found(self):
        appt = self.store.add_appointment(uuid4(), at(DAY, 9))
        with self.assertRaises(NotFoundError):
            _run(self.svc.cancel(self.owner, appt.id))
        self.assertEqual(appt.status, "confirmed")

    def test_slot_is_free_after_cancel(self):
        appt = self.store.add_appointment(self.owner, at(DAY, 9))
        _run(self.svc.cancel(self.owner, appt.id))
        again, _ = _run(self.svc.schedule(self.owner, _request(at(DAY, 9))))
        self.assertEqual(again.status, "confirmed")


class TestAppointmentServiceQueries(unittest.TestCase):
    def test_list_filters_by_day_and_status(self):
        store = FakeStore()
        owner = uuid4()
        store.add_appointment(owner, at(DAY, 9))
        store.add_appointment(owner, at(DAY, 10), status="cancelled")
        store.add_appointment(owner, at(DAY + _dt.timedelta(days=1), 9))
        svc = store.appointment_service()

        self.assertEqual(len(_run(svc.list_appointments(owner, day=DAY))), 2)
        self.assertEqual(len(_run(svc.list_appointments(owner, day=DAY, status="confirmed"))), 1)
        self.assertEqual(len(_run(svc.list_appointments(owner))), 3)

    def test_invalid_status_filter(self):
        svc = FakeStore().appointment_service()
        with self.assertRaises(ValidationError):
            _run(svc.list_appointments(uuid4(), status="pending"))

    def test_get_missing(self):
        svc = FakeStore().appointment_service()
        with self.assertRaises(NotFoundError):
            _run(svc.get(uuid4(), uuid4()))


class TestBlockService(unittest.TestCase):
    def setUp(self):
        self.adapter = FakeCalendarAdapter()
        self.store = FakeStore(self.adapter)
        self.notifier = MagicMock()
        self.svc = self.store.block_service(self.notifier)
        self.owner = uuid4()

    def test_create_exports_and_notifies(self):
        block, warning = _run(self.svc.create(self.owner, BlockRequest(kind="full-day", date=DAY, reason="Congresso")))
        self.assertIsNone(warning)
        self.assertEqual(block.external_event_id, "evt-1")
        self.assertEqual(self.adapter.created[0].summary, "🔒 BLOQUEADO - Congresso")
        self.assertEqual(self.notifier.notify.call_args.args[0], "block.created")

    def test_remove_deactivates_and_deletes_event(self):
        block = self.store.add_block(self.owner, DAY, external_event_id="g-block")
        updated, warning = _run(self.svc.remove(self.owner, block.id))
        self.assertFalse(updated.active)
        self.assertIsNone(warning)
        self.assertEqual(self.adapter.deleted, ["g-block"])
        self.assertEqual(updated.external_event_id, "g-block")
        self.assertEqual(self.notifier.notify.call_args.args[0], "block.removed")

    def test_removed_block_no_longer_rejects(self):
        block = self.store.add_block(self.owner, DAY)
        _run(self.svc.remove(self.owner, block.id))
        appt, _ = _run(self.store.appointment_service().schedule(self.owner, _request(at(DAY, 9))))
        self.assertEqual(appt.status, "confirmed")

    def test_remove_other_owner_is_not_found(self):
        block = self.store.add_block(uuid4(), DAY)
        with self.assertRaises(NotFoundError):
            _run(self.svc.remove(self.owner, block.id))

    def test_list_active(self):
        self.store.add_block(self.owner, DAY)
        self.store.add_block(self.owner, DAY, active=False)
        self.assertEqual(len(_run(self.svc.list_active(self.owner))), 1)
