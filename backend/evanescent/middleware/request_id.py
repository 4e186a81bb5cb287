"""
Evanescent Backend: Request ID Middleware
===========================================

What:  Tags each request with a short correlation ID and echoes it back.
How:   Stores the ID in a ContextVar (read by loggers and exception
       handlers) and on request.state, then sets the X-Request-ID response
       header.

A client-supplied X-Request-ID is honoured so the frontend can correlate its
own error reports, but it is truncated so it cannot flood log lines.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one thread each see their own ID
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

MAX_REQUEST_ID_LENGTH = 64


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Assigns (or accepts) a request ID and returns it in X-Request-ID."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        supplied = request.headers.get("X-Request-ID", "").strip()
        rid = supplied[:MAX_REQUEST_ID_LENGTH] if supplied else uuid.uuid4().hex[:8]

        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response
