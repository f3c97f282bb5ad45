from __future__ import annotations

import uuid
from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from planner.db import models
from planner.scheduler import Placed, PlacementResult, WorkingHoursPolicy


def list_runs(session: Session, *, limit: int = 50) -> list[models.SchedulingRun]:
    statement = (
        select(models.SchedulingRun)
        .options(selectinload(models.SchedulingRun.placements))
        .order_by(models.SchedulingRun.created_at.desc())
        .limit(limit)
    )
    return list(session.scalars(statement))


def get_run(session: Session, run_id: uuid.UUID) -> models.SchedulingRun | None:
    return session.get(models.SchedulingRun, run_id, options=[selectinload(models.SchedulingRun.placements)])


def create_run(
    session: Session,
    *,
    title: str,
    label: str | None,
    window: tuple[datetime, datetime],
    policy: WorkingHoursPolicy,
    buffer_minutes: int,
    results: Sequence[PlacementResult],
    summary: str,
    document_url: str | None = None,
    event_urls: Sequence[str | None] | None = None,
) -> models.SchedulingRun:
    """Persist a run with one placement row per submitted subtask."""

    scheduled = sum(1 for result in results if isinstance(result, Placed))
    run = models.SchedulingRun(
        title=title,
        label=label,
        window_start=window[0],
        window_end=window[1],
        buffer_minutes=buffer_minutes,
        scheduled_count=scheduled,
        unscheduled_count=len(results) - scheduled,
        summary=summary,
        document_url=document_url,
        policy={
            "start_hour": policy.start_hour,
            "end_hour": policy.end_hour,
            "work_days": sorted(policy.work_days),
        },
    )
    session.add(run)
    session.flush()

    urls = list(event_urls) if event_urls is not None else [None] * len(results)
    for position, (result, event_url) in enumerate(zip(results, urls)):
        placement = models.RunPlacement(
            run_id=run.id,
            position=position,
            label=result.request.label,
            duration_minutes=result.request.duration_minutes,
            event_url=event_url,
        )
        if isinstance(result, Placed):
            placement.status = "placed"
            placement.scheduled_start = result.interval.start
            placement.scheduled_end = result.interval.end
        else:
            placement.status = "unplaced"
            placement.reason = result.reason.value
            placement.detail = result.detail
        session.add(placement)
    session.flush()
    session.refresh(run)
    return run
