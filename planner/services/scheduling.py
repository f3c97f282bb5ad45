from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, tzinfo
from typing import Callable, Protocol, Sequence
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from planner.core.config import Settings, get_settings
from planner.integrations.google.calendar import CalendarAPIError
from planner.repositories import runs as runs_repo
from planner.scheduler import (
    BatchScheduler,
    CommitError,
    Interval,
    Placed,
    PlacementResult,
    SchedulingRequest,
    summarize,
    validate_run,
)


logger = logging.getLogger(__name__)


class CalendarGateway(Protocol):
    def busy_intervals(self, start: datetime, end: datetime) -> list[Interval]: ...

    def create_event(self, summary: str, interval: Interval) -> str: ...


class PlanDocumentWriter(Protocol):
    def create_plan_document(self, title: str, subtasks: Sequence[SchedulingRequest]) -> str: ...


@dataclass(slots=True)
class ScheduleOutcome:
    title: str
    window: tuple[datetime, datetime]
    results: list[PlacementResult]
    event_urls: list[str | None]
    summary: str
    document_url: str | None = None
    run_id: uuid.UUID | None = None
    cancelled: bool = False
    busy: list[Interval] = field(default_factory=list)

    @property
    def scheduled_count(self) -> int:
        return sum(1 for result in self.results if isinstance(result, Placed))


class SchedulingService:
    """Coordinates the calendar snapshot, the batch placement run and run persistence."""

    def __init__(
        self,
        calendar: CalendarGateway | None,
        *,
        documents: PlanDocumentWriter | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.calendar = calendar
        self.documents = documents
        self.settings = settings or get_settings()
        self.policy = self.settings.working_hours_policy()
        self.zone: tzinfo = ZoneInfo(self.settings.scheduler_timezone)

    def compute_window(
        self,
        *,
        now: datetime | None = None,
        start: datetime | None = None,
        days: int | None = None,
    ) -> tuple[datetime, datetime]:
        """Return ``[start, end)`` for a run in the configured timezone.

        Without an explicit start the window opens at the start of the working
        day ``schedule_start_offset_days`` after ``now`` and closes at the end of
        the working day ``schedule_window_days`` later.
        """

        days = self.settings.schedule_window_days if days is None else days
        if start is None:
            now = self._localize(now) if now is not None else datetime.now(self.zone)
            start = (now + timedelta(days=self.settings.schedule_start_offset_days)).replace(
                hour=self.policy.start_hour, minute=0, second=0, microsecond=0
            )
        else:
            start = self._localize(start)
        end = (start + timedelta(days=days)).replace(hour=self.policy.end_hour, minute=0, second=0, microsecond=0)
        return start, end

    def schedule_subtasks(
        self,
        session: Session,
        *,
        title: str,
        subtasks: Sequence[SchedulingRequest],
        label: str | None = None,
        window_start: datetime | None = None,
        window_days: int | None = None,
        create_document: bool = True,
        should_cancel: Callable[[], bool] | None = None,
    ) -> ScheduleOutcome:
        calendar = self._require_calendar()
        window = self.compute_window(start=window_start, days=window_days)
        validate_run(subtasks, *window)

        document_url: str | None = None
        if create_document and self.documents is not None:
            document_url = self.documents.create_plan_document(title, subtasks)

        busy = self._busy_snapshot(window)

        event_urls: list[str] = []

        def commit(request: SchedulingRequest, interval: Interval) -> None:
            try:
                event_urls.append(calendar.create_event(request.label, interval))
            except CalendarAPIError as exc:
                raise CommitError(str(exc)) from exc
            except Exception as exc:
                # Any failed insert only loses this subtask; the rest of the batch still runs.
                logger.exception("Unexpected error creating calendar event for %r", request.label)
                raise CommitError(f"{type(exc).__name__}: {exc}") from exc

        run = self._scheduler().run(subtasks, busy, window[0], window[1], commit, should_cancel=should_cancel)
        aligned_urls = _align_event_urls(run.results, event_urls)
        summary = summarize(run.results)

        record = runs_repo.create_run(
            session,
            title=title,
            label=label,
            window=window,
            policy=self.policy,
            buffer_minutes=self.settings.buffer_minutes,
            results=run.results,
            summary=summary,
            document_url=document_url,
            event_urls=aligned_urls,
        )
        logger.info("Run %s for %r finished: %s", record.id, title, summary)

        return ScheduleOutcome(
            title=title,
            window=window,
            results=run.results,
            event_urls=aligned_urls,
            summary=summary,
            document_url=document_url,
            run_id=record.id,
            cancelled=run.cancelled,
            busy=list(run.busy),
        )

    def preview(
        self,
        *,
        title: str,
        subtasks: Sequence[SchedulingRequest],
        window_start: datetime | None = None,
        window_days: int | None = None,
        initial_busy: Sequence[Interval] | None = None,
    ) -> ScheduleOutcome:
        """Dry run: place the subtasks without creating events or storing the run."""

        window = self.compute_window(start=window_start, days=window_days)
        validate_run(subtasks, *window)
        if initial_busy is None:
            busy = self._busy_snapshot(window) if self.calendar is not None else []
        else:
            busy = [self._localize_interval(interval) for interval in initial_busy]

        run = self._scheduler().run(subtasks, busy, window[0], window[1], _dry_run_commit)
        return ScheduleOutcome(
            title=title,
            window=window,
            results=run.results,
            event_urls=[None] * len(run.results),
            summary=summarize(run.results),
            busy=list(run.busy),
        )

    def _scheduler(self) -> BatchScheduler:
        return BatchScheduler(
            self.policy,
            buffer_minutes=self.settings.buffer_minutes,
            commit_backoff_minutes=self.settings.commit_backoff_minutes,
        )

    def _require_calendar(self) -> CalendarGateway:
        if self.calendar is None:
            raise RuntimeError("Google Calendar is not connected")
        return self.calendar

    def _busy_snapshot(self, window: tuple[datetime, datetime]) -> list[Interval]:
        calendar = self._require_calendar()
        intervals = [self._localize_interval(interval) for interval in calendar.busy_intervals(*window)]
        logger.info("Loaded %d busy intervals between %s and %s", len(intervals), window[0], window[1])
        return intervals

    def _localize(self, moment: datetime) -> datetime:
        if moment.tzinfo is None:
            return moment.replace(tzinfo=self.zone)
        return moment.astimezone(self.zone)

    def _localize_interval(self, interval: Interval) -> Interval:
        return Interval(start=self._localize(interval.start), end=self._localize(interval.end))


def _dry_run_commit(request: SchedulingRequest, interval: Interval) -> None:
    return None


def _align_event_urls(results: Sequence[PlacementResult], event_urls: Sequence[str]) -> list[str | None]:
    # Successful commits happen in the same order as the Placed results.
    remaining = iter(event_urls)
    return [next(remaining, None) if isinstance(result, Placed) else None for result in results]


__all__ = [
    "CalendarGateway",
    "PlanDocumentWriter",
    "ScheduleOutcome",
    "SchedulingService",
]
