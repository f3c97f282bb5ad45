from __future__ import annotations

import bisect
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Iterable, Iterator, Union


@dataclass(frozen=True, slots=True, order=True)
class Interval:
    """Half-open time range ``[start, end)`` ordered by its start instant."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.start >= self.end:
            raise ValueError("interval start must be earlier than its end")

    @property
    def duration_minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)

    def overlaps(self, other: Interval) -> bool:
        return self.start < other.end and other.start < self.end

    def extended(self, minutes: int) -> Interval:
        return Interval(start=self.start, end=self.end + timedelta(minutes=minutes))


@dataclass(frozen=True, slots=True)
class WorkingHoursPolicy:
    """Weekly template of eligible weekdays and hours for placements.

    ``work_days`` uses ``datetime.weekday()`` numbering (0 is Monday). The
    policy carries no timezone: every instant handed to the scheduler is
    expected to be expressed in the policy's wall clock already.
    """

    start_hour: int = 9
    end_hour: int = 17
    work_days: frozenset[int] = frozenset({0, 1, 2, 3, 4})

    def __post_init__(self) -> None:
        if not (0 <= self.start_hour < self.end_hour <= 23):
            raise ValueError("working hours must satisfy 0 <= start_hour < end_hour <= 23")
        days = frozenset(self.work_days)
        if not days:
            raise ValueError("at least one work day is required")
        if any(day not in range(7) for day in days):
            raise ValueError("work days must be weekday numbers between 0 and 6")
        object.__setattr__(self, "work_days", days)

    @property
    def workday_minutes(self) -> int:
        return (self.end_hour - self.start_hour) * 60

    def is_work_day(self, day: date) -> bool:
        return day.weekday() in self.work_days

    def day_start(self, moment: datetime) -> datetime:
        return moment.replace(hour=self.start_hour, minute=0, second=0, microsecond=0)

    def day_end(self, moment: datetime) -> datetime:
        return moment.replace(hour=self.end_hour, minute=0, second=0, microsecond=0)


@dataclass(frozen=True, slots=True)
class SchedulingRequest:
    label: str
    duration_minutes: int


class UnplacedReason(str, Enum):
    """Why a request was not placed.

    ``CANCELLED`` is only produced when the run is given a ``should_cancel``
    callback and it fires; the other two values cover every uncancelled run.
    """

    NO_SLOT_IN_WINDOW = "no_slot_in_window"
    DOWNSTREAM_COMMIT_FAILED = "downstream_commit_failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True, slots=True)
class Placed:
    request: SchedulingRequest
    interval: Interval

    @property
    def placed(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class Unplaced:
    request: SchedulingRequest
    reason: UnplacedReason
    detail: str | None = None

    @property
    def placed(self) -> bool:
        return False


PlacementResult = Union[Placed, Unplaced]


@dataclass(slots=True)
class BusySet:
    """Busy intervals owned by a single scheduling run, kept sorted by start."""

    _intervals: list[Interval] = field(default_factory=list)

    @classmethod
    def from_intervals(cls, intervals: Iterable[Interval]) -> BusySet:
        return cls(sorted(intervals))

    def add(self, interval: Interval) -> None:
        bisect.insort(self._intervals, interval)

    def snapshot(self) -> tuple[Interval, ...]:
        return tuple(self._intervals)

    def __iter__(self) -> Iterator[Interval]:
        return iter(self._intervals)

    def __len__(self) -> int:
        return len(self._intervals)


__all__ = [
    "BusySet",
    "Interval",
    "Placed",
    "PlacementResult",
    "SchedulingRequest",
    "Unplaced",
    "UnplacedReason",
    "WorkingHoursPolicy",
]
