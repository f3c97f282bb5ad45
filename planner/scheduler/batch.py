from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Iterable, Sequence

from .models import (
    BusySet,
    Interval,
    Placed,
    PlacementResult,
    SchedulingRequest,
    Unplaced,
    UnplacedReason,
    WorkingHoursPolicy,
)
from .slot_finder import find_earliest_slot


logger = logging.getLogger(__name__)


class SchedulingPreconditionError(ValueError):
    """Raised before a run starts when its inputs are malformed."""


class CommitError(RuntimeError):
    """Raised by a commit callback when the external reservation failed."""


CommitCallback = Callable[[SchedulingRequest, Interval], Any]


@dataclass(slots=True)
class BatchRun:
    results: list[PlacementResult]
    busy: tuple[Interval, ...]
    cursor_trace: list[datetime] = field(default_factory=list)
    cancelled: bool = False

    @property
    def placed(self) -> list[Placed]:
        return [result for result in self.results if isinstance(result, Placed)]

    @property
    def unplaced(self) -> list[Unplaced]:
        return [result for result in self.results if isinstance(result, Unplaced)]


class BatchScheduler:
    """Greedy, order-preserving placement of a task list into free working time."""

    def __init__(
        self,
        policy: WorkingHoursPolicy,
        *,
        buffer_minutes: int = 15,
        commit_backoff_minutes: int = 1,
    ) -> None:
        if buffer_minutes < 0:
            raise SchedulingPreconditionError("buffer_minutes must not be negative")
        if commit_backoff_minutes < 1:
            raise SchedulingPreconditionError("commit_backoff_minutes must be at least one minute")
        self.policy = policy
        self.buffer_minutes = buffer_minutes
        self.commit_backoff_minutes = commit_backoff_minutes

    def run(
        self,
        requests: Sequence[SchedulingRequest],
        initial_busy: Iterable[Interval],
        window_start: datetime,
        window_end: datetime,
        commit: CommitCallback,
        *,
        should_cancel: Callable[[], bool] | None = None,
    ) -> BatchRun:
        validate_run(requests, window_start, window_end)

        busy = BusySet.from_intervals(initial_busy)
        cursor = window_start
        buffer = timedelta(minutes=self.buffer_minutes)
        results: list[PlacementResult] = []
        cursor_trace: list[datetime] = []

        for index, request in enumerate(requests):
            if should_cancel is not None and should_cancel():
                logger.info("Scheduling run cancelled before request %d of %d", index + 1, len(requests))
                results.extend(Unplaced(request=pending, reason=UnplacedReason.CANCELLED) for pending in requests[index:])
                return BatchRun(results=results, busy=busy.snapshot(), cursor_trace=cursor_trace, cancelled=True)

            cursor_trace.append(cursor)
            slot = find_earliest_slot(
                cursor,
                request.duration_minutes,
                busy,
                self.policy,
                self.buffer_minutes,
                window_end,
            )
            if slot is None:
                logger.info("No slot found for %r (%d min) before %s", request.label, request.duration_minutes, window_end)
                results.append(Unplaced(request=request, reason=UnplacedReason.NO_SLOT_IN_WINDOW))
                continue

            try:
                commit(request, slot)
            except CommitError as exc:
                logger.warning("Commit failed for %r at %s: %s", request.label, slot.start, exc)
                results.append(
                    Unplaced(request=request, reason=UnplacedReason.DOWNSTREAM_COMMIT_FAILED, detail=str(exc))
                )
                cursor += timedelta(minutes=self.commit_backoff_minutes)
                continue

            logger.info("Placed %r at %s - %s", request.label, slot.start, slot.end)
            results.append(Placed(request=request, interval=slot))
            busy.add(slot.extended(self.buffer_minutes))
            cursor = slot.end + buffer

        return BatchRun(results=results, busy=busy.snapshot(), cursor_trace=cursor_trace)


def schedule_all(
    requests: Sequence[SchedulingRequest],
    initial_busy: Iterable[Interval],
    policy: WorkingHoursPolicy,
    buffer_minutes: int,
    window_start: datetime,
    window_end: datetime,
    commit: CommitCallback,
    *,
    should_cancel: Callable[[], bool] | None = None,
    commit_backoff_minutes: int = 1,
) -> list[PlacementResult]:
    """Place every request in order and return one result per request."""

    scheduler = BatchScheduler(
        policy,
        buffer_minutes=buffer_minutes,
        commit_backoff_minutes=commit_backoff_minutes,
    )
    run = scheduler.run(
        requests,
        initial_busy,
        window_start,
        window_end,
        commit,
        should_cancel=should_cancel,
    )
    return run.results


def summarize(results: Sequence[PlacementResult]) -> str:
    """Render a one-line human readable report of a run."""

    scheduled = sum(1 for result in results if isinstance(result, Placed))
    summary = f"{scheduled}/{len(results)} scheduled"
    unscheduled = [result for result in results if isinstance(result, Unplaced)]
    if unscheduled:
        labels = ", ".join(f"{result.request.label} ({_REASON_TEXT[result.reason]})" for result in unscheduled)
        summary += f"; unscheduled: {labels}"
    return summary


_REASON_TEXT = {
    UnplacedReason.NO_SLOT_IN_WINDOW: "no slot found",
    UnplacedReason.DOWNSTREAM_COMMIT_FAILED: "calendar commit failed",
    UnplacedReason.CANCELLED: "cancelled",
}


def validate_run(requests: Sequence[SchedulingRequest], window_start: datetime, window_end: datetime) -> None:
    """Raise :class:`SchedulingPreconditionError` for an inverted window or a non-positive duration."""

    if window_start > window_end:
        raise SchedulingPreconditionError("window_start must not be after window_end")
    for request in requests:
        if request.duration_minutes <= 0:
            raise SchedulingPreconditionError(
                f"duration for {request.label!r} must be a positive number of minutes"
            )


__all__ = [
    "BatchRun",
    "BatchScheduler",
    "CommitCallback",
    "CommitError",
    "SchedulingPreconditionError",
    "schedule_all",
    "summarize",
    "validate_run",
]
