"""
Merit Badge Counselor Backend — Request ID Middleware
======================================================

What:  Assigns a short correlation id to each request and returns it in the
       X-Request-ID response header.
Why:   Every log line of one submission (validation, staging, transaction,
       cleanup) can be tied together, and a user reporting a failed
       submission can quote the id.
How:   Reuses a client-provided X-Request-ID, otherwise generates one; stores
       it in a ContextVar for loggers and exception handlers.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one event loop each see their own id
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Sets request_id_var and request.state.request_id, echoes the header."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:8]
        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response
