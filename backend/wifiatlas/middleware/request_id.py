"""
WifiAtlas Backend — Request ID Middleware
===========================================

What:  Assigns a correlation ID to every HTTP request.
How:   Honors a client-sent X-Request-ID, otherwise generates a short one;
       stores it in a ContextVar for loggers and error handlers and echoes it
       in the X-Request-ID response header.

The error envelope's `request_id` field is read from the same ContextVar, so
a user reporting an error can hand support the exact ID found in the logs.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one event loop each see their own ID
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

MAX_CLIENT_ID_LENGTH = 64


def new_request_id() -> str:
    return uuid.uuid4().hex[:8]


class RequestIDMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get("X-Request-ID", "")[:MAX_CLIENT_ID_LENGTH] or new_request_id()

        request_id_var.set(rid)
        request.state.request_id = rid
        response = await call_next(request)

        response.headers["X-Request-ID"] = rid
        return response
