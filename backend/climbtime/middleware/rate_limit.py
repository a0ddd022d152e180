"""
ClimbTime Backend - Rate Limiting Middleware
==============================================

What:  Per-IP sliding window rate limiter.
How:   Each IP keeps the timestamps of its requests inside the window;
       a request arriving when the window is full is answered 429 with a
       Retry-After header.

Limits come from settings.rate_limit_requests per settings.rate_limit_window
seconds. State is in-process: each worker limits independently.
"""

import logging
import time
from collections import defaultdict
from typing import Dict, List

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from climbtime.config import settings
from climbtime.exceptions import RateLimitExceededError
from climbtime.middleware.request_id import request_id_var
from climbtime.schemas.common import error_body

logger = logging.getLogger(__name__)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    In-memory sliding window rate limiter.

    Excluded paths: health checks and API documentation.
    """

    EXCLUDED_PATHS = {"/health", "/docs", "/openapi.json", "/redoc"}
    CLEANUP_EVERY = 1000

    def __init__(self, app, **kwargs):
        super().__init__(app, **kwargs)
        self._requests: Dict[str, List[float]] = defaultdict(list)
        self._seen = 0

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in self.EXCLUDED_PATHS or request.method == "OPTIONS":
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        now = time.time()
        window_start = now - settings.rate_limit_window

        timestamps = [ts for ts in self._requests[client_ip] if ts > window_start]
        self._requests[client_ip] = timestamps

        if len(timestamps) >= settings.rate_limit_requests:
            retry_after = int(timestamps[0] + settings.rate_limit_window - now) + 1
            exc = RateLimitExceededError(retry_after=retry_after)
            logger.warning(
                "[%s] Rate limit exceeded for IP %s: %d requests in %ds window",
                request_id_var.get(""),
                client_ip,
                len(timestamps),
                settings.rate_limit_window,
            )
            return JSONResponse(
                status_code=429,
                content=error_body(
                    "rate_limit_exceeded",
                    exc.message,
                    request_id_var.get(""),
                    details={"retry_after": retry_after},
                ),
                headers={"Retry-After": str(retry_after)},
            )

        timestamps.append(now)

        self._seen += 1
        if self._seen % self.CLEANUP_EVERY == 0:
            self._cleanup_inactive_ips(window_start)

        return await call_next(request)

    def _cleanup_inactive_ips(self, window_start: float) -> None:
        inactive_ips = [
            ip for ip, timestamps in self._requests.items()
            if not timestamps or timestamps[-1] < window_start
        ]
        for ip in inactive_ips:
            del self._requests[ip]
        if inactive_ips:
            logger.debug("Cleaned up %d inactive IP entries", len(inactive_ips))
