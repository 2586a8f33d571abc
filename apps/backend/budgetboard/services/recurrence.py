"""Recurrence date generation.

Occurrence ``k`` of a rule is the start date-time advanced by ``k`` calendar
steps. Month and year steps are computed from the original anchor rather than
from the previous occurrence, so a rule started on the 31st lands on the 31st
again whenever the target month has one (Jan 31 -> Feb 29 -> Mar 31 -> Apr 30).
"""

from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta
from typing import Iterator

from budgetboard.models import RecurrenceType


def _clamp_day(year: int, month: int, day: int) -> int:
    return min(day, calendar.monthrange(year, month)[1])


def add_months(value: datetime, months: int) -> datetime:
    total = value.year * 12 + (value.month - 1) + months
    year, month = total // 12, total % 12 + 1
    return value.replace(year=year, month=month, day=_clamp_day(year, month, value.day))


def add_years(value: datetime, years: int) -> datetime:
    year = value.year + years
    return value.replace(year=year, day=_clamp_day(year, value.month, value.day))


def coerce_recurrence_type(value: RecurrenceType | str) -> RecurrenceType:
    if isinstance(value, RecurrenceType):
        return value
    return RecurrenceType(str(value).strip().lower())


def step(anchor: datetime, recurrence_type: RecurrenceType | str, count: int) -> datetime:
    """Return ``anchor`` advanced by ``count`` steps of ``recurrence_type``."""
    kind = coerce_recurrence_type(recurrence_type)
    if kind is RecurrenceType.WEEKLY:
        return anchor + timedelta(days=7 * count)
    if kind is RecurrenceType.MONTHLY:
        return add_months(anchor, count)
    return add_years(anchor, count)


def _as_datetime(value: date | datetime) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime(value.year, value.month, value.day)


def _as_date(value: date | datetime) -> date:
    return value.date() if isinstance(value, datetime) else value


def iter_occurrence_dates(
    start: date | datetime,
    end: date | datetime,
    recurrence_type: RecurrenceType | str,
) -> Iterator[datetime]:
    """Lazily yield occurrence date-times from ``start`` up to ``end`` (inclusive, by calendar date)."""
    kind = coerce_recurrence_type(recurrence_type)
    anchor = _as_datetime(start)
    last_day = _as_date(end)

    count = 0
    current = anchor
    while current.date() <= last_day:
        yield current
        count += 1
        try:
            current = step(anchor, kind, count)
        except (OverflowError, ValueError):
            # stepped past datetime.max
            return


def generate_occurrence_dates(
    start: date | datetime,
    end: date | datetime,
    recurrence_type: RecurrenceType | str,
) -> list[datetime]:
    """Ordered occurrence date-times from ``start`` up to ``end`` (inclusive, by calendar date).

    ``end`` before ``start`` yields an empty list. Raises ``ValueError`` for an
    unknown recurrence type.
    """
    return list(iter_occurrence_dates(start, end, recurrence_type))
