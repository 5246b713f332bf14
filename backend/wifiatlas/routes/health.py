"""
WifiAtlas Backend — Health Check Route
========================================

What:  Liveness/readiness probe for Docker and load balancers.
How:   SELECT 1 against the database; reports whether the external network
       directory has credentials configured (it is not called, so a probe
       never spends directory quota).

Status levels:
    - healthy:   database reachable, directory configured        (HTTP 200)
    - degraded:  database reachable, directory unconfigured      (HTTP 200)
    - unhealthy: database unreachable                             (HTTP 503)
"""

import logging
import time

from fastapi import APIRouter, Response
from sqlalchemy import text

from wifiatlas import __version__
from wifiatlas.config import settings
from wifiatlas.database import engine
from wifiatlas.schemas.common import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(response: Response) -> HealthResponse:
    db_status = "connected"
    directory_status = "configured" if settings.wigle_configured else "unconfigured"
    overall = "healthy" if settings.wigle_configured else "degraded"

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        response.status_code = 503
        logger.warning("Health check: database unreachable: %s", str(e))

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        network_directory=directory_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
