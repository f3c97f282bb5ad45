from __future__ import annotations

from fastapi import Depends, HTTPException, status
from google.oauth2.credentials import Credentials
from sqlalchemy.orm import Session

from planner.core.config import get_settings
from planner.db.session import get_session
from planner.integrations.google.auth import credentials_from_tokens
from planner.integrations.google.calendar import GoogleCalendarGateway, build_calendar_service
from planner.integrations.google.docs import GoogleDocsWriter, build_docs_service
from planner.repositories.integration_credentials import get_latest as get_integration
from planner.services.scheduling import CalendarGateway, PlanDocumentWriter, SchedulingService


def get_google_credentials(session: Session = Depends(get_session)) -> tuple[Credentials, str]:
    """Load the stored Google tokens, returning credentials and the calendar id."""

    credential = get_integration(session)
    if credential is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Google account is not connected")
    try:
        creds = credentials_from_tokens(
            access_token=credential.access_token,
            refresh_token=credential.refresh_token,
            token_expiry=credential.token_expiry,
            scopes=credential.scopes or get_settings().oauth_scopes(),
        )
    except RuntimeError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return creds, credential.calendar_id or "primary"


def get_calendar_gateway(google: tuple[Credentials, str] = Depends(get_google_credentials)) -> CalendarGateway:
    creds, calendar_id = google
    return GoogleCalendarGateway(
        build_calendar_service(creds),
        calendar_id=calendar_id,
        time_zone=get_settings().scheduler_timezone,
    )


def get_document_writer(google: tuple[Credentials, str] = Depends(get_google_credentials)) -> PlanDocumentWriter:
    creds, _ = google
    return GoogleDocsWriter(build_docs_service(creds))


def get_scheduling_service(
    calendar: CalendarGateway = Depends(get_calendar_gateway),
    documents: PlanDocumentWriter = Depends(get_document_writer),
) -> SchedulingService:
    return SchedulingService(calendar, documents=documents)
