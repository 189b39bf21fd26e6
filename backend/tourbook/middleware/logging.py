"""
Tourbook Backend — Development Request Logging Middleware
==========================================================

What:  One access-log line per request, in the compact development format:

           GET /api/v1/tours?duration=5 200 12.4 ms - 1532

How:   Measures wall time around call_next and logs method, URL (with query
       string), status, duration and response Content-Length.
When:  Registered only when NODE_ENV=development (see create_app).

Log level follows the status class so failures stand out in a dev console:
    5xx → ERROR, 4xx → WARNING, everything else → INFO.

Request bodies and cookies are never logged.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from tourbook.middleware.request_id import request_id_var

logger = logging.getLogger("tourbook.access")


def format_access_line(method: str, url: str, status: int, duration_ms: float, length: str) -> str:
    return f"{method} {url} {status} {duration_ms:.1f} ms - {length}"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs method, URL, status, duration and response size for each request."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        start_time = time.perf_counter()

        url = request.url.path
        if request.url.query:
            url = f"{url}?{request.url.query}"

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        rid = request_id_var.get("")
        client_ip = request.client.host if request.client else "unknown"
        logger.log(
            log_level,
            format_access_line(
                request.method,
                url,
                status,
                duration_ms,
                response.headers.get("content-length", "-"),
            ),
            extra={
                "request_id": rid,
                "method": request.method,
                "path": request.url.path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )
        return response
