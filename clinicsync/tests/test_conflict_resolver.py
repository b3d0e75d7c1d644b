"""Tests for ConflictResolver admission rules, using in-memory repositories."""
from __future__ import annotations

import asyncio
import datetime as _dt
import unittest
from unittest.mock import AsyncMock
from uuid import uuid4

from sqlalchemy.exc import IntegrityError

from clinicsync.core.exceptions import (
    ConflictError,
    DayBlockedError,
    SlotBlockedError,
    SlotTakenError,
    ValidationError,
)
from clinicsync.scheduling.types import AppointmentOrigin, AppointmentRequest, BlockRequest
from clinicsync.tests.fakes import FakeStore, at

DAY = _dt.date(2025, 3, 10)


def _run(coro):
    return asyncio.run(coro)


def _request(start_at, kind="consulta", name="Maria Souza", **kwargs):
    return AppointmentRequest(
        subject_name=name,
        subject_phone="11999990000",
        start_at=start_at,
        kind=kind,
        **kwargs,
    )


class TestAdmit(unittest.TestCase):
    def setUp(self):
        self.store = FakeStore()
        self.resolver = self.store.resolver()
        self.owner = uuid4()

    def test_admits_into_free_slot(self):
        appt = _run(self.resolver.admit(self.owner, _request(at(DAY, 9))))
        self.assertEqual(appt.status, "confirmed")
        self.assertEqual(appt.origin, "manual")
        self.assertIsNone(appt.external_event_id)
        self.assertEqual(self.store.session.commits, 1)

    def test_second_admit_same_instant_is_slot_taken(self):
        _run(self.resolver.admit(self.owner, _request(at(DAY, 9), kind="consulta")))
        with self.assertRaises(SlotTakenError) as ctx:
            _run(self.resolver.admit(self.owner, _request(at(DAY, 9), kind="retorno", name="João")))
        self.assertEqual(ctx.exception.code, "SLOT_TAKEN")
        self.assertEqual(ctx.exception.http_status, 409)

    def test_same_instant_in_another_offset_is_the_same_slot(self):
        _run(self.resolver.admit(self.owner, _request(at(DAY, 9))))
        utc_same_instant = _dt.datetime(2025, 3, 10, 12, 0, tzinfo=_dt.timezone.utc)
        with self.assertRaises(SlotTakenError):
            _run(self.resolver.admit(self.owner, _request(utc_same_instant)))

    def test_cancelled_appointment_frees_the_slot(self):
        self.store.add_appointment(self.owner, at(DAY, 9), status="cancelled")
        appt = _run(self.resolver.admit(self.owner, _request(at(DAY, 9))))
        self.assertEqual(appt.status, "confirmed")

    def test_other_owner_slot_is_independent(self):
        _run(self.resolver.admit(self.owner, _request(at(DAY, 9))))
        other = _run(self.resolver.admit(uuid4(), _request(at(DAY, 9))))
        self.assertEqual(other.status, "confirmed")

    def test_full_day_block_rejects_every_time(self):
        self.store.add_block(self.owner, DAY, kind="full-day")
        for hour in (8, 12, 17):
            with self.assertRaises(DayBlockedError) as ctx:
                _run(self.resolver.admit(self.owner, _request(at(DAY, hour))))
            self.assertEqual(ctx.exception.code, "DAY_BLOCKED")

    def test_inactive_block_is_ignored(self):
        self.store.add_block(self.owner, DAY, kind="full-day", active=False)
        appt = _run(self.resolver.admit(self.owner, _request(at(DAY, 9))))
        self.assertEqual(appt.status, "confirmed")

    def test_time_range_block_is_half_open(self):
        self.store.add_block(
            self.owner, DAY, kind="time-range",
            range_start=_dt.time(12, 0), range_end=_dt.time(14, 0),
        )
        with self.assertRaises(SlotBlockedError) as ctx:
            _run(self.resolver.admit(self.owner, _request(at(DAY, 13))))
        self.assertEqual(ctx.exception.code, "SLOT_BLOCKED")
        with self.assertRaises(SlotBlockedError):
            _run(self.resolver.admit(self.owner, _request(at(DAY, 12))))

        admitted = _run(self.resolver.admit(self.owner, _request(at(DAY, 14))))
        self.assertEqual(admitted.status, "confirmed")
        before = _run(self.resolver.admit(self.owner, _request(at(DAY, 11, 30))))
        self.assertEqual(before.status, "confirmed")

    def test_block_on_other_day_does_not_apply(self):
        self.store.add_block(self.owner, DAY + _dt.timedelta(days=1), kind="full-day")
        appt = _run(self.resolver.admit(self.owner, _request(at(DAY, 9))))
        self.assertEqual(appt.status, "confirmed")

    def test_origin_is_recorded(self):
        appt = _run(self.resolver.admit(
            self.owner, _request(at(DAY, 10)), AppointmentOrigin.EXTERNAL_AUTOMATION,
        ))
        self.assertEqual(appt.origin, "external-automation")

    def test_blank_name_is_validation_error(self):
        with self.assertRaises(ValidationError):
            _run(self.resolver.admit(self.owner, _request(at(DAY, 9), name="   ")))
        self.assertEqual(self.store.appointments.rows, {})

    def test_duplicate_external_event_id_is_rejected(self):
        self.store.add_appointment(self.owner, at(DAY, 8), external_event_id="evt-1")
        with self.assertRaises(ConflictError) as ctx:
            _run(self.resolver.admit(
                self.owner, _request(at(DAY, 9), external_event_id="evt-1"),
            ))
        self.assertEqual(ctx.exception.code, "DUPLICATE_EXTERNAL_EVENT")

    def test_unique_index_violation_maps_to_slot_taken(self):
        self.store.appointments.create = AsyncMock(side_effect=IntegrityError(
            "INSERT", {}, Exception("uq_appointments_owner_start_confirmed"),
        ))
        with self.assertRaises(SlotTakenError):
            _run(self.resolver.admit(self.owner, _request(at(DAY, 9))))
        self.assertEqual(self.store.session.rollbacks, 1)
        self.assertEqual(self.store.session.commits, 0)


class TestConcurrentAdmit(unittest.TestCase):
    def test_racing_admissions_yield_one_winner(self):
        store = FakeStore()
        owner = uuid4()

        async def main():
            return await asyncio.gather(
                store.resolver().admit(owner, _request(at(DAY, 9), name="A")),
                store.resolver().admit(owner, _request(at(DAY, 9), name="B")),
                return_exceptions=True,
            )

        results = _run(main())
        errors = [r for r in results if isinstance(r, SlotTakenError)]
        admitted = [r for r in results if not isinstance(r, BaseException)]
        self.assertEqual(len(admitted), 1)
        self.assertEqual(len(errors), 1)
        # Decided by the lock-guarded check, not by the unique index
        self.assertEqual(store.session.rollbacks, 0)
        confirmed = [a for a in store.appointments.rows.values() if a.status == "confirmed"]
        self.assertEqual(len(confirmed), 1)


class TestAdmitBlock(unittest.TestCase):
    def setUp(self):
        self.store = FakeStore()
        self.resolver = self.store.resolver()
        self.owner = uuid4()

    def test_full_day_block_drops_range(self):
        block = _run(self.resolver.admit_block(self.owner, BlockRequest(
            kind="full-day", date=DAY, range_start=_dt.time(9), range_end=_dt.time(10), reason=" Férias ",
        )))
        self.assertTrue(block.active)
        self.assertIsNone(block.range_start)
        self.assertIsNone(block.range_end)
        self.assertEqual(block.reason, "Férias")

    def test_time_range_requires_bounds(self):
        with self.assertRaises(ValidationError):
            _run(self.resolver.admit_block(self.owner, BlockRequest(kind="time-range", date=DAY)))

    def test_time_range_requires_start_before_end(self):
        with self.assertRaises(ValidationError):
            _run(self.resolver.admit_block(self.owner, BlockRequest(
                kind="time-range", date=DAY, range_start=_dt.time(14), range_end=_dt.time(12),
            )))

    def test_offset_range_is_stored_as_clinic_wall_time(self):
        utc = _dt.timezone.utc
        block = _run(self.resolver.admit_block(self.owner, BlockRequest(
            kind="time-range", date=DAY,
            range_start=_dt.time(15, 0, tzinfo=utc), range_end=_dt.time(17, 0, tzinfo=utc),
        )))
        self.assertEqual((block.range_start, block.range_end), (_dt.time(12), _dt.time(14)))
        self.assertIsNone(block.range_start.tzinfo)

        with self.assertRaises(SlotBlockedError):
            _run(self.resolver.admit(self.owner, _request(at(DAY, 13))))
        self.assertEqual(_run(self.resolver.admit(self.owner, _request(at(DAY, 14)))).status, "confirmed")

    def test_unknown_kind_is_rejected(self):
        with self.assertRaises(ValidationError):
            _run(self.resolver.admit_block(self.owner, BlockRequest(kind="weekly", date=DAY)))

    def test_block_does_not_cancel_existing_appointment(self):
        # Accepted drift: retroactive blocks leave confirmed bookings alone
        existing = self.store.add_appointment(self.owner, at(DAY, 9))
        _run(self.resolver.admit_block(self.owner, BlockRequest(kind="full-day", date=DAY)))
        self.assertEqual(existing.status, "confirmed")
        with self.assertRaises(DayBlockedError):
            _run(self.resolver.admit(self.owner, _request(at(DAY, 10))))


class TestAvailableSlots(unittest.TestCase):
    def test_excludes_taken_and_blocked_slots(self):
        store = FakeStore()
        owner = uuid4()
        store.add_appointment(owner, at(DAY, 9))
        store.add_appointment(owner, at(DAY, 10), status="cancelled")
        store.add_block(
            owner, DAY, kind="time-range", range_start=_dt.time(12), range_end=_dt.time(14),
        )

        slots = _run(store.resolver().available_slots(owner, DAY))

        self.assertNotIn(at(DAY, 9), slots)
        self.assertIn(at(DAY, 10), slots)
        self.assertNotIn(at(DAY, 12), slots)
        self.assertNotIn(at(DAY, 13, 30), slots)
        self.assertIn(at(DAY, 14), slots)
        self.assertEqual(len(slots), 20 - 1 - 4)

    def test_full_day_block_leaves_nothing(self):
        store = FakeStore()
        owner = uuid4()
        store.add_block(owner, DAY, kind="full-day")
        self.assertEqual(_run(store.resolver().available_slots(owner, DAY)), [])
