"""
Merit Badge Counselor Backend — Request Logging Middleware
===========================================================

What:  One access log line per request: method, path, status, duration,
       request id, client IP.
Why:   Submissions carry uploads and a multi-table transaction; their
       duration and outcome are the first thing to look at when one fails.
How:   Measures from middleware entry to response, picks the log level from
       the status code (5xx ERROR, 4xx WARNING, else INFO). An exception no
       handler claimed becomes the generic 500 envelope here, so it is still
       logged and still leaves through RequestIDMiddleware.

What we log vs what we DON'T log (privacy):
    Log:       method, path, status, duration, IP, request ID
    Don't log: form fields (names, email, phone), file contents
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from counselor.middleware.request_id import request_id_var

logger = logging.getLogger("counselor.access")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Access logging with request-id correlation; /health is not logged."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path == "/health":
            return await call_next(request)

        start_time = time.perf_counter()
        client_ip = request.client.host if request.client else "unknown"
        method = request.method
        rid = request_id_var.get("")

        try:
            response = await call_next(request)
        except Exception as e:
            # Exceptions no handler claimed; answered inside RequestIDMiddleware
            logger.error(
                "Unhandled error on %s %s [%s]: %s", method, path, rid, str(e), exc_info=True
            )
            response = JSONResponse(
                status_code=500,
                content={"success": False, "message": "Internal server error"},
            )

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
