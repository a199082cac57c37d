"""
VoiceNotes Backend: Request ID Middleware
=========================================

What:  Assigns a short correlation id to each request and echoes it in the
       ``X-Request-ID`` response header.
How:   A client-supplied ``X-Request-ID`` is reused; otherwise an 8-character
       UUID prefix is generated. The id is stored in a ContextVar (read by
       the access log and the exception handlers) and on ``request.state``.
Why:   Error bodies carry the same id, so a user report can be matched to
       its log lines.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one event loop each see their own id.
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

MAX_REQUEST_ID_LENGTH = 64


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Sets ``request_id_var`` for the duration of each request."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get("X-Request-ID", "").strip()[:MAX_REQUEST_ID_LENGTH]
        if not rid:
            rid = str(uuid.uuid4())[:8]

        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response
