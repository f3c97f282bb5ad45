from __future__ import annotations

import logging
from datetime import datetime, timezone

from google.auth.exceptions import GoogleAuthError
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import Error as GoogleClientError

from planner.scheduler import Interval


logger = logging.getLogger(__name__)


class CalendarAPIError(RuntimeError):
    """Raised when a Google Calendar request fails or returns an unusable payload."""


# Timeouts and socket errors surface as OSError, token refresh failures as GoogleAuthError.
_TRANSPORT_ERRORS = (GoogleClientError, GoogleAuthError, OSError)


def build_calendar_service(credentials: Credentials):
    """Construct a Google Calendar API service client."""

    return build("calendar", "v3", credentials=credentials, cache_discovery=False)


class GoogleCalendarGateway:
    """Free/busy lookups and event creation against one Google calendar."""

    def __init__(self, service, *, calendar_id: str = "primary", time_zone: str = "UTC") -> None:
        self._service = service
        self.calendar_id = calendar_id
        self.time_zone = time_zone

    def busy_intervals(self, start: datetime, end: datetime) -> list[Interval]:
        body = {
            "timeMin": _encode_google_datetime(start),
            "timeMax": _encode_google_datetime(end),
            "timeZone": self.time_zone,
            "items": [{"id": self.calendar_id}],
        }
        try:
            response = self._service.freebusy().query(body=body).execute()
        except _TRANSPORT_ERRORS as exc:
            raise CalendarAPIError(f"Failed to query free/busy: {exc}") from exc

        calendar = response.get("calendars", {}).get(self.calendar_id, {})
        if calendar.get("errors"):
            raise CalendarAPIError(f"Failed to query free/busy: {calendar['errors']}")

        intervals: list[Interval] = []
        for period in calendar.get("busy", []):
            busy_start = parse_google_datetime(period["start"])
            busy_end = parse_google_datetime(period["end"])
            if busy_start >= busy_end:
                continue
            intervals.append(Interval(start=busy_start, end=busy_end))
        logger.info("Free/busy returned %d busy periods for %s", len(intervals), self.calendar_id)
        return intervals

    def create_event(self, summary: str, interval: Interval) -> str:
        """Insert an event and return its ``htmlLink``."""

        event = {
            "summary": summary,
            "start": {"dateTime": _encode_google_datetime(interval.start), "timeZone": self.time_zone},
            "end": {"dateTime": _encode_google_datetime(interval.end), "timeZone": self.time_zone},
        }
        try:
            created = self._service.events().insert(calendarId=self.calendar_id, body=event).execute()
        except _TRANSPORT_ERRORS as exc:
            raise CalendarAPIError(f"Failed to create calendar event: {exc}") from exc

        link = created.get("htmlLink")
        if not link:
            raise CalendarAPIError("Failed to create calendar event: no event URL returned")
        logger.info("Created calendar event %r: %s", summary, link)
        return link


def _encode_google_datetime(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.isoformat()


def parse_google_datetime(value: str) -> datetime:
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


__all__ = [
    "CalendarAPIError",
    "GoogleCalendarGateway",
    "build_calendar_service",
    "parse_google_datetime",
]
