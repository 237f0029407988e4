"""Conflict detection between room bookings.

Two bookings conflict when they target the same room and some occurrence of
one overlaps some occurrence of the other. Intervals are half-open, so a
booking ending at 11:00 never collides with one starting at 11:00.

Weekly bookings recur forever and only their time-of-day window matters; the
calendar date of their ``start``/``end`` is a reference point, not a start
date. Weekdays are numbered 0 = Sunday ... 6 = Saturday.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Iterable, Iterator, Optional

from facility_booking.domain.models import (
    NoRecurrence,
    Occurrence,
    Schedule,
    WeeklyRecurrence,
)


def weekday_index(value: date) -> int:
    return value.isoweekday() % 7


def time_window(schedule: Schedule) -> tuple[time, time]:
    """Return the ``[start, end)`` clock-time window of a schedule."""
    return schedule.start.time(), schedule.end.time()


def intervals_overlap(a_start, a_end, b_start, b_end) -> bool:
    return a_start < b_end and b_start < a_end


def _dates_between(first: date, last: date) -> Iterator[date]:
    for offset in range((last - first).days + 1):
        yield first + timedelta(days=offset)


def _weekly_occurrence_on(schedule: Schedule, day: date) -> tuple[datetime, datetime]:
    start_tod, end_tod = time_window(schedule)
    return datetime.combine(day, start_tod), datetime.combine(day, end_tod)


def _weekly_vs_once(weekly: Schedule, recurrence: WeeklyRecurrence, once: Schedule) -> bool:
    for day in _dates_between(once.start.date(), once.end.date()):
        if weekday_index(day) not in recurrence.days:
            continue
        occurrence_start, occurrence_end = _weekly_occurrence_on(weekly, day)
        if intervals_overlap(occurrence_start, occurrence_end, once.start, once.end):
            return True
    return False


def _weekly_vs_weekly(
    first: Schedule,
    first_recurrence: WeeklyRecurrence,
    second: Schedule,
    second_recurrence: WeeklyRecurrence,
) -> bool:
    if not first_recurrence.days & second_recurrence.days:
        return False
    first_start, first_end = time_window(first)
    second_start, second_end = time_window(second)
    return intervals_overlap(first_start, first_end, second_start, second_end)


def pairwise_conflict(first: Schedule, second: Schedule) -> bool:
    """Return True when two bookings in the same room overlap in time."""
    if first.room_id != second.room_id:
        return False

    first_recurrence = first.recurrence
    second_recurrence = second.recurrence
    if isinstance(first_recurrence, WeeklyRecurrence):
        if isinstance(second_recurrence, WeeklyRecurrence):
            return _weekly_vs_weekly(first, first_recurrence, second, second_recurrence)
        return _weekly_vs_once(first, first_recurrence, second)
    if isinstance(second_recurrence, WeeklyRecurrence):
        return _weekly_vs_once(second, second_recurrence, first)
    return intervals_overlap(first.start, first.end, second.start, second.end)


def find_conflict(
    candidate: Schedule,
    existing: Iterable[Schedule],
) -> Optional[Schedule]:
    """Return the first existing booking that collides with ``candidate``.

    The candidate's own id is skipped so an update is never blocked by the
    booking it replaces.
    """
    for schedule in existing:
        if schedule.id == candidate.id:
            continue
        if pairwise_conflict(candidate, schedule):
            return schedule
    return None


def has_conflict(candidate: Schedule, existing: Iterable[Schedule]) -> bool:
    return find_conflict(candidate, existing) is not None


def iter_occurrences(
    schedule: Schedule,
    window_start: datetime,
    window_end: datetime,
) -> Iterator[Occurrence]:
    """Yield the occurrences of ``schedule`` overlapping ``[window_start, window_end)``."""
    if not window_start < window_end:
        return

    if isinstance(schedule.recurrence, NoRecurrence):
        if intervals_overlap(schedule.start, schedule.end, window_start, window_end):
            yield Occurrence(schedule.id, schedule.start, schedule.end)
        return

    days = schedule.recurrence.days
    for day in _dates_between(window_start.date(), window_end.date()):
        if weekday_index(day) not in days:
            continue
        occurrence_start, occurrence_end = _weekly_occurrence_on(schedule, day)
        if intervals_overlap(occurrence_start, occurrence_end, window_start, window_end):
            yield Occurrence(schedule.id, occurrence_start, occurrence_end)


def occurs_within(
    schedule: Schedule,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> bool:
    """Return True when any occurrence overlaps the (optionally open) range."""
    if isinstance(schedule.recurrence, NoRecurrence):
        if start is not None and not schedule.end > start:
            return False
        if end is not None and not schedule.start < end:
            return False
        return True

    if start is None or end is None:
        return True
    return next(iter_occurrences(schedule, start, end), None) is not None
