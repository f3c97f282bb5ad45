from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable, Iterator

from .models import Interval, WorkingHoursPolicy


def next_working_day_start(moment: datetime, policy: WorkingHoursPolicy) -> datetime:
    """Return the first opening time (``start_hour:00`` on a work day) after ``moment``.

    When ``moment`` falls before opening on a work day the same day's opening is
    returned; otherwise the search moves forward day by day, skipping any run of
    non-working days.
    """

    candidate = policy.day_start(moment)
    if candidate > moment and policy.is_work_day(candidate):
        return candidate
    for _ in range(7):
        candidate += timedelta(days=1)
        if policy.is_work_day(candidate):
            return candidate
    # WorkingHoursPolicy guarantees at least one work day per week.
    raise AssertionError("working hours policy has no work days")


def fits_working_hours(start: datetime, duration_minutes: int, policy: WorkingHoursPolicy) -> bool:
    """Check that a task starting at ``start`` runs entirely inside one working day."""

    if not policy.is_work_day(start):
        return False
    if not (policy.start_hour <= start.hour < policy.end_hour):
        return False
    task_end = start + timedelta(minutes=duration_minutes)
    if task_end.date() != start.date():
        return False
    return task_end <= policy.day_end(start)


def first_conflict(start: datetime, end: datetime, busy: Iterable[Interval]) -> Interval | None:
    """Return the first busy interval, in iteration order, overlapping ``[start, end)``."""

    for interval in busy:
        if interval.start < end and interval.end > start:
            return interval
    return None


def jump_past_conflict(start: datetime, end: datetime, busy: Iterable[Interval]) -> datetime | None:
    """Return the instant just past the first conflict, or ``None`` if the range is free."""

    conflict = first_conflict(start, end, busy)
    if conflict is None:
        return None
    return conflict.end


def find_earliest_slot(
    cursor: datetime,
    duration_minutes: int,
    busy: Iterable[Interval],
    policy: WorkingHoursPolicy,
    buffer_minutes: int,
    deadline: datetime,
) -> Interval | None:
    """Find the earliest conflict-free slot inside working hours before ``deadline``.

    ``busy`` must be sorted by start: only the first overlapping interval drives
    the jump forward, so an unsorted sequence can skip an earlier conflict. The
    returned interval covers the task only; the trailing buffer is used for the
    deadline and conflict checks but is left to the caller to reserve. Re-iterable
    collections such as :class:`BusySet` are scanned in place; a one-shot iterator
    is materialised first.
    """

    if isinstance(busy, Iterator):
        busy = tuple(busy)
    task_length = timedelta(minutes=duration_minutes)
    reserved_length = timedelta(minutes=duration_minutes + buffer_minutes)

    trial = cursor
    while trial < deadline:
        reserved_end = trial + reserved_length
        if reserved_end > deadline:
            return None

        if not fits_working_hours(trial, duration_minutes, policy):
            trial = next_working_day_start(trial, policy)
            continue

        next_trial = jump_past_conflict(trial, reserved_end, busy)
        if next_trial is not None:
            trial = next_trial
            continue

        return Interval(start=trial, end=trial + task_length)

    return None


__all__ = [
    "find_earliest_slot",
    "first_conflict",
    "fits_working_hours",
    "jump_past_conflict",
    "next_working_day_start",
]
