from __future__ import annotations

import logging
from typing import Sequence

from google.auth.exceptions import GoogleAuthError
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import Error as GoogleClientError

from planner.scheduler import SchedulingRequest


logger = logging.getLogger(__name__)

DOCUMENT_URL_TEMPLATE = "https://docs.google.com/document/d/{document_id}/edit"


class DocumentAPIError(RuntimeError):
    """Raised when the plan document cannot be created or filled."""


def build_docs_service(credentials: Credentials):
    return build("docs", "v1", credentials=credentials, cache_discovery=False)


def plan_title(title: str) -> str:
    return f"Plan for: {title}"


def build_plan_requests(title: str, subtasks: Sequence[SchedulingRequest]) -> list[dict]:
    """Docs batchUpdate requests writing a heading followed by a bulleted subtask list."""

    heading = plan_title(title)
    index = 1
    requests: list[dict] = [
        {"insertText": {"location": {"index": index}, "text": heading + "\n"}},
        {
            "updateParagraphStyle": {
                "range": {"startIndex": index, "endIndex": index + len(heading)},
                "paragraphStyle": {"namedStyleType": "HEADING_1"},
                "fields": "namedStyleType",
            }
        },
    ]
    index += len(heading) + 1

    if not subtasks:
        return requests

    body = "\n".join(f"- {subtask.label} ({subtask.duration_minutes} min)" for subtask in subtasks)
    requests.append({"insertText": {"location": {"index": index}, "text": body + "\n"}})
    requests.append(
        {
            "createParagraphBullets": {
                "range": {"startIndex": index, "endIndex": index + len(body)},
                "bulletPreset": "BULLET_DISC_CIRCLE_SQUARE",
            }
        }
    )
    return requests


class GoogleDocsWriter:
    def __init__(self, service) -> None:
        self._service = service

    def create_plan_document(self, title: str, subtasks: Sequence[SchedulingRequest]) -> str:
        documents = self._service.documents()
        try:
            created = documents.create(body={"title": plan_title(title)}).execute()
            document_id = created.get("documentId")
            if not document_id:
                raise DocumentAPIError("Failed to create plan document: no document id returned")
            documents.batchUpdate(
                documentId=document_id,
                body={"requests": build_plan_requests(title, subtasks)},
            ).execute()
        except (GoogleClientError, GoogleAuthError, OSError) as exc:
            raise DocumentAPIError(f"Failed to create plan document: {exc}") from exc

        url = DOCUMENT_URL_TEMPLATE.format(document_id=document_id)
        logger.info("Created plan document %s", url)
        return url


__all__ = [
    "DocumentAPIError",
    "GoogleDocsWriter",
    "build_docs_service",
    "build_plan_requests",
]
