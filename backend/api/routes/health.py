"""
Health check endpoints.

Provides endpoints for monitoring application health and readiness.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from modules.auth.store import UserStore
from shared.config import Settings

from ..dependencies import get_app_settings, get_user_store

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str


class ReadinessResponse(BaseModel):
    """Readiness check response model."""

    status: str
    store: str
    backend: str


@router.get("/health", response_model=HealthResponse)
async def health_check(settings: Settings = Depends(get_app_settings)) -> HealthResponse:
    """
    Basic health check endpoint.

    Returns 200 if the API is running.
    """
    return HealthResponse(status="healthy", version=settings.app_version)


@router.get("/ready", response_model=ReadinessResponse)
async def readiness_check(store: UserStore = Depends(get_user_store)):
    """
    Readiness check endpoint.

    Returns 503 when the credential store cannot be read.
    """
    healthy = await store.health_check()
    body = ReadinessResponse(
        status="ready" if healthy else "unavailable",
        store="connected" if healthy else "unreachable",
        backend=store.backend.name,
    )
    if not healthy:
        return JSONResponse(status_code=503, content=body.model_dump())
    return body
