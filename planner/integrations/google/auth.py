from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Sequence

from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow

from planner.core.config import get_settings

TOKEN_URI = "https://oauth2.googleapis.com/token"


@dataclass(slots=True)
class GoogleOAuthConfig:
    client_id: str
    client_secret: str
    redirect_uri: str
    scopes: Sequence[str]


def _build_config() -> GoogleOAuthConfig:
    settings = get_settings()
    if not settings.google_client_id or not settings.google_client_secret:
        raise RuntimeError("Google OAuth client credentials are not configured")
    redirect_uri = settings.google_redirect_uri or "http://localhost:8000/api/v1/google/auth/callback"
    return GoogleOAuthConfig(
        client_id=settings.google_client_id,
        client_secret=settings.google_client_secret,
        redirect_uri=redirect_uri,
        scopes=settings.oauth_scopes(),
    )


def build_oauth_flow(state: str | None = None) -> Flow:
    config = _build_config()
    flow = Flow.from_client_config(
        {
            "web": {
                "client_id": config.client_id,
                "client_secret": config.client_secret,
                "redirect_uris": [config.redirect_uri],
                "auth_uri": "https://accounts.google.com/o/oauth2/auth",
                "token_uri": TOKEN_URI,
            }
        },
        scopes=config.scopes,
        state=state,
    )
    flow.redirect_uri = config.redirect_uri
    return flow


def credentials_from_tokens(
    *,
    access_token: str | None,
    refresh_token: str | None,
    token_expiry: datetime | None,
    scopes: Sequence[str],
) -> Credentials:
    """Rebuild stored tokens into credentials, refreshing them when expired."""

    config = _build_config()
    creds = Credentials(
        token=access_token,
        refresh_token=refresh_token,
        token_uri=TOKEN_URI,
        client_id=config.client_id,
        client_secret=config.client_secret,
        scopes=list(scopes),
    )
    if token_expiry is not None:
        # google-auth compares expiry against naive UTC timestamps
        if token_expiry.tzinfo is not None:
            token_expiry = token_expiry.astimezone(timezone.utc).replace(tzinfo=None)
        creds.expiry = token_expiry
    if not creds.valid and creds.refresh_token:
        creds.refresh(Request())
    return creds


__all__ = [
    "GoogleOAuthConfig",
    "build_oauth_flow",
    "credentials_from_tokens",
]
