from __future__ import annotations

import random
from datetime import datetime, timedelta

import pytest

from planner.scheduler import (
    BatchScheduler,
    CommitError,
    Interval,
    Placed,
    SchedulingPreconditionError,
    SchedulingRequest,
    Unplaced,
    UnplacedReason,
    WorkingHoursPolicy,
    schedule_all,
    summarize,
)

POLICY = WorkingHoursPolicy(start_hour=9, end_hour=17, work_days=frozenset({0, 1, 2, 3, 4}))


def _ts(day: int, hour: int, minute: int = 0) -> datetime:
    return datetime(2025, 1, 6, hour, minute) + timedelta(days=day)


def _accept(request: SchedulingRequest, slot: Interval) -> None:
    return None


def test_buffer_is_enforced_between_consecutive_tasks() -> None:
    requests = [SchedulingRequest("Outline", 60), SchedulingRequest("Draft", 60)]
    run = BatchScheduler(POLICY, buffer_minutes=15).run(requests, [], _ts(0, 9), _ts(7, 17), _accept)

    assert run.results == [
        Placed(requests[0], Interval(_ts(0, 9), _ts(0, 10))),
        Placed(requests[1], Interval(_ts(0, 10, 15), _ts(0, 11, 15))),
    ]
    assert run.busy == (
        Interval(_ts(0, 9), _ts(0, 10, 15)),
        Interval(_ts(0, 10, 15), _ts(0, 11, 30)),
    )
    assert run.cursor_trace == [_ts(0, 9), _ts(0, 10, 15)]


def test_unplaced_task_does_not_advance_cursor() -> None:
    requests = [SchedulingRequest("Marathon", 600), SchedulingRequest("Email", 30)]
    busy = [Interval(_ts(0, 9, 45), _ts(0, 12))]
    run = BatchScheduler(POLICY, buffer_minutes=15).run(requests, busy, _ts(0, 9), _ts(7, 17), _accept)

    assert run.results[0] == Unplaced(requests[0], UnplacedReason.NO_SLOT_IN_WINDOW)
    assert run.results[1] == Placed(requests[1], Interval(_ts(0, 9), _ts(0, 9, 30)))
    assert run.cursor_trace == [_ts(0, 9), _ts(0, 9)]


def test_commit_failure_nudges_cursor_and_leaves_busy_set_alone() -> None:
    requests = [SchedulingRequest("A", 60), SchedulingRequest("B", 60), SchedulingRequest("C", 60)]
    committed: list[str] = []

    def commit(request: SchedulingRequest, slot: Interval) -> None:
        if request.label == "B":
            raise CommitError("calendar rejected the event")
        committed.append(request.label)

    run = BatchScheduler(POLICY, buffer_minutes=15).run(requests, [], _ts(0, 9), _ts(7, 17), commit)

    assert committed == ["A", "C"]
    assert run.results[1] == Unplaced(
        requests[1], UnplacedReason.DOWNSTREAM_COMMIT_FAILED, detail="calendar rejected the event"
    )
    assert run.results[2] == Placed(requests[2], Interval(_ts(0, 10, 16), _ts(0, 11, 16)))
    assert run.cursor_trace == [_ts(0, 9), _ts(0, 10, 15), _ts(0, 10, 16)]
    assert len(run.busy) == 2


def test_commit_backoff_is_configurable() -> None:
    requests = [SchedulingRequest("A", 30), SchedulingRequest("B", 30)]

    def commit(request: SchedulingRequest, slot: Interval) -> None:
        if request.label == "A":
            raise CommitError("unavailable")

    run = BatchScheduler(POLICY, buffer_minutes=0, commit_backoff_minutes=10).run(
        requests, [], _ts(0, 9), _ts(7, 17), commit
    )
    assert run.results[1] == Placed(requests[1], Interval(_ts(0, 9, 10), _ts(0, 9, 40)))


def test_other_commit_exceptions_propagate() -> None:
    def commit(request: SchedulingRequest, slot: Interval) -> None:
        raise ValueError("bug in commit callback")

    with pytest.raises(ValueError):
        schedule_all([SchedulingRequest("A", 30)], [], POLICY, 15, _ts(0, 9), _ts(7, 17), commit)


def test_initial_busy_is_sorted_and_not_mutated() -> None:
    initial = [Interval(_ts(0, 13), _ts(0, 14)), Interval(_ts(0, 9), _ts(0, 12))]
    snapshot = list(initial)
    requests = [SchedulingRequest("Review", 60)]

    first = schedule_all(requests, initial, POLICY, 0, _ts(0, 9), _ts(7, 17), _accept)
    second = schedule_all(requests, initial, POLICY, 0, _ts(0, 9), _ts(7, 17), _accept)

    assert first == second == [Placed(requests[0], Interval(_ts(0, 12), _ts(0, 13)))]
    assert initial == snapshot


def test_cancellation_marks_remaining_requests() -> None:
    requests = [SchedulingRequest("A", 30), SchedulingRequest("B", 30), SchedulingRequest("C", 30)]
    checks = iter([False, True])

    run = BatchScheduler(POLICY, buffer_minutes=15).run(
        requests, [], _ts(0, 9), _ts(7, 17), _accept, should_cancel=lambda: next(checks)
    )

    assert run.cancelled
    assert isinstance(run.results[0], Placed)
    assert [result.reason for result in run.results[1:]] == [UnplacedReason.CANCELLED, UnplacedReason.CANCELLED]
    assert len(run.results) == len(requests)


@pytest.mark.parametrize(
    ("requests", "window"),
    [
        ([SchedulingRequest("Zero", 0)], (_ts(0, 9), _ts(7, 17))),
        ([SchedulingRequest("Negative", -5)], (_ts(0, 9), _ts(7, 17))),
        ([SchedulingRequest("Fine", 30)], (_ts(7, 17), _ts(0, 9))),
    ],
)
def test_malformed_runs_are_rejected_before_any_commit(requests, window) -> None:
    calls: list[SchedulingRequest] = []
    with pytest.raises(SchedulingPreconditionError):
        schedule_all(requests, [], POLICY, 15, window[0], window[1], lambda request, slot: calls.append(request))
    assert calls == []


def test_negative_buffer_is_rejected() -> None:
    with pytest.raises(SchedulingPreconditionError):
        BatchScheduler(POLICY, buffer_minutes=-1)


def test_summary_lists_unscheduled_tasks() -> None:
    placed = Placed(SchedulingRequest("Outline", 30), Interval(_ts(0, 9), _ts(0, 9, 30)))
    missing = Unplaced(SchedulingRequest("Marathon", 600), UnplacedReason.NO_SLOT_IN_WINDOW)
    failed = Unplaced(SchedulingRequest("Sync", 30), UnplacedReason.DOWNSTREAM_COMMIT_FAILED)

    assert summarize([placed]) == "1/1 scheduled"
    assert summarize([placed, missing, failed]) == (
        "1/3 scheduled; unscheduled: Marathon (no slot found), Sync (calendar commit failed)"
    )


@pytest.mark.parametrize("seed", range(25))
def test_randomised_runs_keep_placement_guarantees(seed: int) -> None:
    rng = random.Random(seed)
    buffer = rng.choice([0, 5, 15, 30])
    window_start = _ts(0, rng.randrange(6, 18), rng.choice([0, 7, 30]))
    window_end = window_start + timedelta(days=rng.randrange(1, 10), hours=rng.randrange(0, 10))

    initial: list[Interval] = []
    for _ in range(rng.randrange(0, 15)):
        start = window_start + timedelta(minutes=rng.randrange(0, 5 * 24 * 60, 5))
        initial.append(Interval(start, start + timedelta(minutes=rng.choice([15, 30, 60, 120, 240]))))
    requests = [
        SchedulingRequest(f"Task {index}", rng.choice([10, 30, 45, 60, 90, 240, 500]))
        for index in range(rng.randrange(1, 12))
    ]

    def commit(request: SchedulingRequest, slot: Interval) -> None:
        if rng.random() < 0.2:
            raise CommitError("flaky")

    run = BatchScheduler(POLICY, buffer_minutes=buffer).run(requests, initial, window_start, window_end, commit)

    assert [result.request for result in run.results] == requests
    assert run.cursor_trace == sorted(run.cursor_trace)

    reserved = [result.interval.extended(buffer) for result in run.placed]
    for index, interval in enumerate(reserved):
        assert interval.end <= window_end
        assert all(not interval.overlaps(busy) for busy in initial)
        assert all(not interval.overlaps(other) for other in reserved[index + 1 :])

    for result in run.placed:
        start, end = result.interval.start, result.interval.end
        assert start >= window_start
        assert start.weekday() in POLICY.work_days
        assert start.date() == end.date()
        assert POLICY.start_hour <= start.hour < POLICY.end_hour
        assert end <= POLICY.day_end(start)
