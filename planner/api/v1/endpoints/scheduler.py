from __future__ import annotations

import time
import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from planner.api.deps import get_scheduling_service
from planner.db import models
from planner.db.session import get_session
from planner.repositories import runs as runs_repo
from planner.scheduler import Placed, SchedulingPreconditionError, SchedulingRequest
from planner.schemas import (
    PlacementRead,
    RunCollection,
    RunRead,
    SchedulePreviewRequest,
    ScheduleRunRequest,
    ScheduleRunResponse,
    SubtaskIn,
)
from planner.services.scheduling import ScheduleOutcome, SchedulingService

router = APIRouter()


@router.post("/run", response_model=ScheduleRunResponse, status_code=status.HTTP_202_ACCEPTED)
def run_schedule(
    payload: ScheduleRunRequest,
    session: Session = Depends(get_session),
    service: SchedulingService = Depends(get_scheduling_service),
) -> ScheduleRunResponse:
    start_time = time.perf_counter()
    try:
        outcome = service.schedule_subtasks(
            session,
            title=payload.title,
            subtasks=_to_requests(payload.subtasks),
            label=payload.label,
            window_start=payload.window_start,
            window_days=payload.window_days,
            create_document=payload.create_document,
        )
    except SchedulingPreconditionError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    except RuntimeError as exc:
        session.rollback()
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    session.commit()
    runtime_ms = (time.perf_counter() - start_time) * 1000
    return _to_response(outcome, runtime_ms=runtime_ms)


@router.post("/preview", response_model=ScheduleRunResponse)
def preview_schedule(
    payload: SchedulePreviewRequest,
    service: SchedulingService = Depends(get_scheduling_service),
) -> ScheduleRunResponse:
    start_time = time.perf_counter()
    try:
        outcome = service.preview(
            title=payload.title,
            subtasks=_to_requests(payload.subtasks),
            window_start=payload.window_start,
            window_days=payload.window_days,
        )
    except SchedulingPreconditionError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    except RuntimeError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    runtime_ms = (time.perf_counter() - start_time) * 1000
    return _to_response(outcome, runtime_ms=runtime_ms)


@router.get("/runs", response_model=RunCollection)
def list_runs(limit: int = 50, session: Session = Depends(get_session)) -> RunCollection:
    return RunCollection(items=[_to_run_read(run) for run in runs_repo.list_runs(session, limit=limit)])


@router.get("/runs/{run_id}", response_model=RunRead)
def get_run(run_id: uuid.UUID, session: Session = Depends(get_session)) -> RunRead:
    run = runs_repo.get_run(session, run_id)
    if run is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Scheduling run not found")
    return _to_run_read(run)


def _to_requests(subtasks: list[SubtaskIn]) -> list[SchedulingRequest]:
    return [SchedulingRequest(label=item.subtask, duration_minutes=item.duration_minutes) for item in subtasks]


def _to_response(outcome: ScheduleOutcome, *, runtime_ms: float) -> ScheduleRunResponse:
    placements: list[PlacementRead] = []
    for position, (result, event_url) in enumerate(zip(outcome.results, outcome.event_urls)):
        item = PlacementRead(
            position=position,
            subtask=result.request.label,
            duration_minutes=result.request.duration_minutes,
            status="placed" if isinstance(result, Placed) else "unplaced",
            event_url=event_url,
        )
        if isinstance(result, Placed):
            item.start = result.interval.start
            item.end = result.interval.end
        else:
            item.reason = result.reason.value
            item.detail = result.detail
        placements.append(item)

    return ScheduleRunResponse(
        run_id=outcome.run_id,
        title=outcome.title,
        window_start=outcome.window[0],
        window_end=outcome.window[1],
        summary=outcome.summary,
        scheduled_count=outcome.scheduled_count,
        total_count=len(outcome.results),
        cancelled=outcome.cancelled,
        document_url=outcome.document_url,
        placements=placements,
        runtime_ms=runtime_ms,
    )


def _to_run_read(run: models.SchedulingRun) -> RunRead:
    return RunRead(
        id=run.id,
        title=run.title,
        label=run.label,
        window_start=run.window_start,
        window_end=run.window_end,
        buffer_minutes=run.buffer_minutes,
        scheduled_count=run.scheduled_count,
        unscheduled_count=run.unscheduled_count,
        summary=run.summary,
        document_url=run.document_url,
        created_at=run.created_at,
        placements=[
            PlacementRead(
                position=placement.position,
                subtask=placement.label,
                duration_minutes=placement.duration_minutes,
                status=placement.status,
                start=placement.scheduled_start,
                end=placement.scheduled_end,
                reason=placement.reason,
                detail=placement.detail,
                event_url=placement.event_url,
            )
            for placement in run.placements
        ],
    )
