from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import JSON, DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, JSONDocument, TimestampMixin


class SchedulingRun(Base, TimestampMixin):
    """One batch placement of a decomposed task into the calendar."""

    __tablename__ = "scheduling_runs"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    label: Mapped[str | None] = mapped_column(String(255), nullable=True)
    window_start: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    window_end: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    buffer_minutes: Mapped[int] = mapped_column(nullable=False)
    scheduled_count: Mapped[int] = mapped_column(nullable=False, default=0)
    unscheduled_count: Mapped[int] = mapped_column(nullable=False, default=0)
    summary: Mapped[str] = mapped_column(String, nullable=False)
    document_url: Mapped[str | None] = mapped_column(String, nullable=True)
    policy: Mapped[dict | None] = mapped_column(JSONDocument, nullable=True)

    placements: Mapped[list[RunPlacement]] = relationship(
        back_populates="run",
        cascade="all, delete-orphan",
        order_by="RunPlacement.position",
    )


class RunPlacement(Base, TimestampMixin):
    """Outcome for a single subtask, index-aligned with the submitted list."""

    __tablename__ = "run_placements"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    run_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("scheduling_runs.id", ondelete="CASCADE"), nullable=False)
    position: Mapped[int] = mapped_column(nullable=False)
    label: Mapped[str] = mapped_column(String, nullable=False)
    duration_minutes: Mapped[int] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False)
    reason: Mapped[str | None] = mapped_column(String(64), nullable=True)
    detail: Mapped[str | None] = mapped_column(String, nullable=True)
    scheduled_start: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    scheduled_end: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    event_url: Mapped[str | None] = mapped_column(String, nullable=True)

    run: Mapped[SchedulingRun] = relationship(back_populates="placements")


class IntegrationCredential(Base, TimestampMixin):
    """Stores OAuth credentials for the Google calendar and documents integration."""

    __tablename__ = "integration_credentials"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    provider: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    account_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    calendar_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    access_token: Mapped[str | None] = mapped_column(String, nullable=True)
    refresh_token: Mapped[str | None] = mapped_column(String, nullable=True)
    token_expiry: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    scopes: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
