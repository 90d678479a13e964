"""
DocCRUD Backend - Health Check Route
======================================

What:  Liveness endpoint for container health checks and load balancers.
How:   Pings the document store. The service is "healthy" only when the
       store answers; otherwise it reports "unhealthy" with HTTP 503.
"""

import logging
import time

from fastapi import APIRouter, Request, Response

from doccrud import __version__
from doccrud.schemas.record import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    responses={503: {"description": "Document store unreachable", "model": HealthResponse}},
)
async def health_check(request: Request, response: Response) -> HealthResponse:
    store = getattr(request.app.state, "store", None)
    db_status = "connected"
    overall = "healthy"

    if store is None or not await store.ping():
        db_status = "disconnected"
        overall = "unhealthy"
        response.status_code = 503
        logger.warning("Health check: document store unreachable")

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
