"""
ClimbTime Backend - Request Logging Middleware
================================================

What:  One access log line per request: method, path, status, duration,
       request id and client IP.
Who:   Logger "climbtime.access"; uvicorn's own access log is silenced in
       main.setup_logging().

Request bodies are never logged: they carry passwords, messages and images.
Severity follows the status: 5xx → ERROR, 4xx → WARNING, else INFO.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from climbtime.middleware.request_id import request_id_var

logger = logging.getLogger("climbtime.access")

QUIET_PATHS = {"/health", "/api/messages/unread/count"}


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs each request after the response is produced.

    Polled endpoints (health probes, the unread badge the client refreshes
    on a timer) are skipped unless they fail.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        start_time = time.perf_counter()
        client_ip = request.client.host if request.client else "unknown"
        method = request.method
        path = request.url.path
        rid = request_id_var.get("")

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        status = response.status_code

        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        elif path in QUIET_PATHS:
            return response
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
