"""Clinic time model: fixed-offset timezone, parsing helpers and the slot grid.

The clinic runs on America/Sao_Paulo time, represented as a fixed UTC-03:00
offset. Brazil abolished daylight saving in 2019; if that ever changes the
block-window arithmetic below has to move to a ZoneInfo-based zone.
"""
from __future__ import annotations

import datetime as _dt
from typing import Iterator, List, Optional, Tuple

from clinicsync.core.exceptions import ValidationError

CLINIC_TZ = _dt.timezone(_dt.timedelta(hours=-3), "America/Sao_Paulo")
CLINIC_TZ_NAME = "America/Sao_Paulo"

APPOINTMENT_DURATION = _dt.timedelta(minutes=30)
SLOT_STEP = APPOINTMENT_DURATION

# Working window; also the rendering window for full-day blocks on the external calendar
DAY_START = _dt.time(8, 0)
DAY_END = _dt.time(18, 0)


def now() -> _dt.datetime:
    return _dt.datetime.now(CLINIC_TZ)


def today() -> _dt.date:
    return now().date()


def parse_instant(value: str) -> _dt.datetime:
    """Parse an ISO-8601 instant. Naive values are read as clinic wall time."""
    if isinstance(value, _dt.datetime):
        parsed = value
    else:
        text = (value or "").strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = _dt.datetime.fromisoformat(text)
        except ValueError as exc:
            raise ValidationError(
                f"Invalid ISO-8601 instant: {value!r}", details={"value": value}, cause=exc
            ) from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=CLINIC_TZ)
    return parsed


def parse_date(value: str) -> _dt.date:
    if isinstance(value, _dt.date) and not isinstance(value, _dt.datetime):
        return value
    try:
        return _dt.date.fromisoformat(str(value).strip()[:10])
    except ValueError as exc:
        raise ValidationError(
            f"Invalid date (expected YYYY-MM-DD): {value!r}", details={"value": value}, cause=exc
        ) from exc


def wall_time_of_day(day: _dt.date, value: _dt.time) -> _dt.time:
    """Naive clinic wall time for a time of day on *day*.

    Offset-carrying times are converted to clinic time. A conversion that
    lands on another calendar day raises ValidationError.
    """
    if value.tzinfo is None or value.utcoffset() is None:
        return value.replace(tzinfo=None)
    instant = _dt.datetime.combine(day, value)
    if clinic_day(instant) != day:
        raise ValidationError(
            f"{value.isoformat()} is not on {day.isoformat()} in clinic time",
            details={"value": value.isoformat(), "date": day.isoformat()},
        )
    return clinic_time_of_day(instant)


def to_clinic(instant: _dt.datetime) -> _dt.datetime:
    if instant.tzinfo is None:
        return instant.replace(tzinfo=CLINIC_TZ)
    return instant.astimezone(CLINIC_TZ)


def clinic_day(instant: _dt.datetime) -> _dt.date:
    return to_clinic(instant).date()


def clinic_time_of_day(instant: _dt.datetime) -> _dt.time:
    return to_clinic(instant).time().replace(tzinfo=None)


def clinic_datetime(day: _dt.date, time_of_day: _dt.time) -> _dt.datetime:
    return _dt.datetime.combine(day, time_of_day, tzinfo=CLINIC_TZ)


def day_bounds(day: _dt.date) -> Tuple[_dt.datetime, _dt.datetime]:
    """[start, end) of a clinic day as aware datetimes."""
    start = clinic_datetime(day, _dt.time(0, 0))
    return start, start + _dt.timedelta(days=1)


def import_window(
    days_back: int,
    days_forward: int,
    reference: Optional[_dt.date] = None,
) -> Tuple[_dt.datetime, _dt.datetime]:
    """Start of the day ``days_back`` ago to the end of the day ``days_forward`` ahead."""
    ref = reference or today()
    start, _ = day_bounds(ref - _dt.timedelta(days=days_back))
    _, end = day_bounds(ref + _dt.timedelta(days=days_forward))
    return start, end


def time_in_range(t: _dt.time, start: _dt.time, end: _dt.time) -> bool:
    """Half-open containment: start inclusive, end exclusive."""
    return start <= t < end


def iter_slots(
    day: _dt.date,
    start: _dt.time = DAY_START,
    end: _dt.time = DAY_END,
    step: _dt.timedelta = SLOT_STEP,
) -> Iterator[_dt.datetime]:
    cursor = clinic_datetime(day, start)
    end_dt = clinic_datetime(day, end)
    while cursor + APPOINTMENT_DURATION <= end_dt:
        yield cursor
        cursor += step


def slot_grid(day: _dt.date) -> List[_dt.datetime]:
    """Candidate appointment start instants for a clinic day (08:00 to 17:30)."""
    return list(iter_slots(day))
