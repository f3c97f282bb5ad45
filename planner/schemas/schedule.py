from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field


class SubtaskIn(BaseModel):
    subtask: str = Field(min_length=1)
    duration_minutes: int = Field(gt=0)


class ScheduleRunRequest(BaseModel):
    title: str = Field(min_length=1)
    subtasks: list[SubtaskIn]
    label: str | None = None
    window_start: datetime | None = None
    window_days: int | None = Field(default=None, ge=0)
    create_document: bool = True


class SchedulePreviewRequest(BaseModel):
    title: str = Field(default="Preview", min_length=1)
    subtasks: list[SubtaskIn]
    window_start: datetime | None = None
    window_days: int | None = Field(default=None, ge=0)


class PlacementRead(BaseModel):
    position: int
    subtask: str
    duration_minutes: int
    status: Literal["placed", "unplaced"]
    start: datetime | None = None
    end: datetime | None = None
    reason: str | None = None
    detail: str | None = None
    event_url: str | None = None


class ScheduleRunResponse(BaseModel):
    run_id: UUID | None = None
    title: str
    window_start: datetime
    window_end: datetime
    summary: str
    scheduled_count: int
    total_count: int
    cancelled: bool = False
    document_url: str | None = None
    placements: list[PlacementRead]
    runtime_ms: float | None = None


class RunRead(BaseModel):
    id: UUID
    title: str
    label: str | None
    window_start: datetime
    window_end: datetime
    buffer_minutes: int
    scheduled_count: int
    unscheduled_count: int
    summary: str
    document_url: str | None
    created_at: datetime
    placements: list[PlacementRead]


class RunCollection(BaseModel):
    items: list[RunRead]
