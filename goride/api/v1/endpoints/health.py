"""Health check endpoints."""

from fastapi import APIRouter, status
from pydantic import BaseModel

from goride.config import settings
from goride.dependencies import HomeRegistry

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str
    environment: str
    backend: str
    open_sessions: int


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Basic health check",
)
async def health_check(registry: HomeRegistry) -> HealthResponse:
    """
    Basic health check endpoint.

    Returns:
        Service status and the number of live rides subscriptions
    """
    return HealthResponse(
        status="healthy",
        version=settings.app_version,
        environment=settings.environment,
        backend=settings.backend,
        open_sessions=len(registry),
    )


@router.get(
    "/ping",
    status_code=status.HTTP_200_OK,
    summary="Simple ping",
)
async def ping() -> dict[str, str]:
    return {"message": "pong"}
