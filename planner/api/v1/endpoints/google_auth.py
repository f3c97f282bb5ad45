from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse, RedirectResponse
from google.auth import jwt
from sqlalchemy.orm import Session

from planner.core.config import get_settings
from planner.db.session import get_session
from planner.integrations.google.auth import build_oauth_flow
from planner.repositories.integration_credentials import upsert_credentials

router = APIRouter()


@router.get("/auth/start")
def start_google_auth(state: str | None = None) -> JSONResponse:
    try:
        flow = build_oauth_flow(state)
    except RuntimeError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    authorization_url, new_state = flow.authorization_url(
        access_type="offline",
        prompt="consent",
        include_granted_scopes="true",
    )
    return JSONResponse({"authorization_url": authorization_url, "state": new_state})


@router.get("/auth/callback")
def google_auth_callback(request: Request, session: Session = Depends(get_session)) -> RedirectResponse:
    params = request.query_params
    if "error" in params:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=params["error"])
    if "code" not in params:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Authorization code missing")

    settings = get_settings()
    flow = build_oauth_flow(params.get("state"))
    flow.fetch_token(authorization_response=str(request.url))
    credentials = flow.credentials

    upsert_credentials(
        session,
        account_email=_account_email(credentials.id_token),
        calendar_id=params.get("calendar_id") or settings.google_calendar_id or "primary",
        access_token=credentials.token,
        refresh_token=credentials.refresh_token,
        token_expiry=credentials.expiry,
        scopes=settings.oauth_scopes(),
    )
    session.commit()

    return RedirectResponse(url="/api/v1/health", status_code=status.HTTP_302_FOUND)


def _account_email(id_token: str | None) -> str | None:
    if not id_token:
        return None
    # The token comes straight from Google's token endpoint over TLS.
    claims = jwt.decode(id_token, verify=False)
    return claims.get("email")
