"""
VoiceNotes Backend: Health Check Route
======================================

What:  GET /health for container health checks and load balancer probes.
How:   ``SELECT 1`` against the database, then the AI provider: circuit
       breaker state if the delegate has one, else its ``health_check()``.

Status levels:
    healthy    database and AI provider reachable
    degraded   database reachable, AI provider down or circuit open
               (notes still work; transcription and summaries do not)
    unhealthy  database unreachable
"""

import logging
import time

from fastapi import APIRouter, Request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from voicenotes import __version__
from voicenotes.schemas.common import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(request: Request) -> HealthResponse:
    state = request.app.state
    db_status = "connected"
    ai_status = "available"
    overall = "healthy"

    try:
        async with state.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    ai = state.ai_delegate
    breaker = getattr(ai, "circuit_breaker", None)
    if breaker is not None and breaker.state == breaker.OPEN:
        ai_status = "circuit_open"
    elif not await ai.health_check():
        ai_status = "unavailable"

    if ai_status != "available" and overall == "healthy":
        overall = "degraded"

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        ai_provider=ai_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
