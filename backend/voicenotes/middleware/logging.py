"""
VoiceNotes Backend: Access Log Middleware
=========================================

What:  One log line per HTTP request on the ``voicenotes.access`` logger.
Why:   A separate logger name lets deployments route or silence access
       lines without touching application logs.
How:  Measures wall time around the handler and logs method, path, status,
       duration, request id and client address at a level chosen by status:
       5xx ERROR, 4xx WARNING, everything else INFO.

Never logged: request bodies (note text, audio), query strings (search
terms) and the Authorization header. /health is skipped.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from voicenotes.middleware.request_id import request_id_var

logger = logging.getLogger("voicenotes.access")

# Why: container health checks poll every few seconds.
QUIET_PATHS = frozenset({"/health"})


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in QUIET_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        client_ip = request.client.host if request.client else "unknown"
        method = request.method
        rid = request_id_var.get("")

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        logger.log(
            log_level,
            "%s %s %d %.1fms [%s] from %s",
            method,
            path,
            status,
            duration_ms,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "method": method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )
        return response
