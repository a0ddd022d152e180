"""
ClimbTime Backend - Health Check Route
========================================

What:  Health check endpoint for monitoring and load balancer probes.
How:   Checks the database (critical) and the prediction service
       (non-critical: only the grade page needs it).

Status levels:
    - healthy:   everything reachable
    - degraded:  prediction service down; the social features still work
    - unhealthy: database down
"""

import logging
import time

from fastapi import APIRouter
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from climbtime import __version__
from climbtime.database import engine
from climbtime.schemas.common import HealthResponse
from climbtime.services.prediction_service import prediction_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    description=(
        "Returns the health status of the backend and its dependencies. "
        "Used by container health checks and load balancers."
    ),
)
async def health_check() -> HealthResponse:
    db_status = "connected"
    prediction_status = "available"
    overall = "healthy"

    # ── Check Database ────────────────────────────────────────────────────
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    # ── Check Prediction Service ──────────────────────────────────────────
    if not await prediction_service.health_check():
        prediction_status = "unavailable"
        if overall != "unhealthy":
            overall = "degraded"

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        prediction_service=prediction_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
