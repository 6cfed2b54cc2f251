"""
Health Routes
=============

FastAPI routes for health check endpoints.
"""

from fastapi import APIRouter, Request

from diarycard.config.logging import get_logger
from diarycard.models.schemas import HealthStatus

router = APIRouter(tags=["Health"])

logger = get_logger(__name__)


@router.get("/health", response_model=HealthStatus)
async def health_check(request: Request) -> HealthStatus:
    """
    Get application health status.

    HTML and SVG cards only need network access; PNG cards also need a
    browser, so a missing browser pool reports the service as degraded.
    """
    browser_pool = getattr(request.app.state, "browser_pool", None)
    browser_healthy = browser_pool is not None and browser_pool.available > 0

    status = HealthStatus(
        status="healthy" if browser_healthy else "degraded",
        version=request.app.version,
        browser_pool=browser_healthy,
    )
    logger.info("Health check completed", status=status.status)
    return status
