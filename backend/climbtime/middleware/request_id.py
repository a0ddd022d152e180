"""
ClimbTime Backend - Request ID Middleware
===========================================

What:  Assigns each request a short id, exposed as the X-Request-ID response
       header and as `request_id` in every error body.
How:   A client-supplied X-Request-ID is reused so the web client can tie its
       own error reports to server log lines; otherwise one is generated.
       The id lives in a ContextVar readable from handlers and loggers.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class RequestIDMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:8]
        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response
