from __future__ import annotations

from fastapi import APIRouter

from planner.api.v1.endpoints import google_auth, health, scheduler

api_router = APIRouter()
api_router.include_router(health.router, tags=["system"])
api_router.include_router(scheduler.router, prefix="/scheduler", tags=["scheduler"])
api_router.include_router(google_auth.router, prefix="/google", tags=["google"])
