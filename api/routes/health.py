"""
Health check endpoint
"""

from fastapi import APIRouter
from core.config import settings
from schemas.api import HealthCheckResponse

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthCheckResponse)
async def health_check():
    """Liveness check with service version and environment."""
    return HealthCheckResponse(
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT
    )
