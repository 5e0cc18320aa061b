"""
PlaceShare Backend — Health Check Route
=========================================

What:  Health check endpoint for monitoring and load balancer probes.
How:   Checks the dependencies a create needs end-to-end (database, geocoder,
       image storage) and returns an aggregate status.
Who:   Called by Docker health checks, load balancers, and monitoring systems.

Status levels:
    - healthy:   All dependencies operational
    - degraded:  Geocoder circuit open (reads still work, creates fail fast)
    - unhealthy: Database unreachable or storage not writable
"""

import logging
import time

from fastapi import APIRouter
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app import __version__
from app.database import engine
from app.schemas.common import HealthResponse
from app.services.asset_store import asset_store
from app.services.geocoding_service import geocoder

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

# Track when the service started for uptime reporting
_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check() -> HealthResponse:
    """
    Check database connectivity, geocoder breaker state and storage writability.

    Check details:
        Database: SELECT 1
        Geocoder: circuit breaker state only, no upstream call
        Storage:  create and delete a probe file in the images directory
    """
    db_status = "connected"
    geocoder_status = "available"
    storage_status = "writable"
    overall = "healthy"

    # ── Check Database ────────────────────────────────────────────────────
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    # ── Check Geocoder ────────────────────────────────────────────────────
    if not await geocoder.health_check():
        geocoder_status = "circuit_open"
        overall = "degraded" if overall != "unhealthy" else overall

    # ── Check Storage ─────────────────────────────────────────────────────
    if not asset_store.is_writable():
        storage_status = "unwritable"
        overall = "unhealthy"
        logger.warning("Health check: storage root not writable: %s", asset_store.images_dir)

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        geocoder=geocoder_status,
        storage=storage_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
