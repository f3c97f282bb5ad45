from __future__ import annotations

from datetime import datetime
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from planner.db import models

GOOGLE_PROVIDER = "google_workspace"


def get_latest(session: Session, provider: str = GOOGLE_PROVIDER) -> models.IntegrationCredential | None:
    statement = (
        select(models.IntegrationCredential)
        .where(models.IntegrationCredential.provider == provider)
        .order_by(models.IntegrationCredential.created_at.desc())
        .limit(1)
    )
    return session.scalars(statement).first()


def upsert_credentials(
    session: Session,
    *,
    account_email: str | None,
    calendar_id: str | None,
    access_token: str | None,
    refresh_token: str | None,
    token_expiry: datetime | None,
    scopes: Iterable[str] | None,
    provider: str = GOOGLE_PROVIDER,
) -> models.IntegrationCredential:
    """Store the latest OAuth tokens, keeping an earlier refresh token if none was issued."""

    credential = get_latest(session, provider)
    if credential is None:
        credential = models.IntegrationCredential(provider=provider)
    credential.account_email = account_email
    credential.calendar_id = calendar_id
    credential.access_token = access_token
    credential.refresh_token = refresh_token or credential.refresh_token
    credential.token_expiry = token_expiry
    if scopes is not None:
        credential.scopes = list(scopes) or credential.scopes
    session.add(credential)
    session.flush()
    return credential
