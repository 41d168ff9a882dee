"""Health check endpoints."""
import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from api.dependencies import get_container
from core.container import AppContainer

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    database: str
    fallback: str


@router.get("/health", response_model=HealthResponse)
async def health_check(
    container: AppContainer = Depends(get_container),
) -> HealthResponse:
    """
    Check application and primary store health.

    An unreachable primary store reports "degraded" while the volatile fallback
    keeps serving requests.
    """
    db_status = "healthy" if await container.primary.ping() else "unhealthy"
    if db_status != "healthy":
        logger.warning("health_check_primary_unreachable")
    return HealthResponse(
        status="healthy" if db_status == "healthy" else "degraded",
        database=db_status,
        fallback="enabled" if container.volatile.enabled else "disabled",
    )
