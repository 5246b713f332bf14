"""
WifiAtlas Backend — Rate Limiting Middleware
==============================================

What:  Per-IP sliding-window limit on the /api surface
       (RATE_LIMIT_REQUESTS per RATE_LIMIT_WINDOW seconds, default 100 per
       15 minutes).
How:   Each IP keeps a deque of request timestamps; timestamps older than
       the window are popped from the left before counting.

Over the limit the client gets 429 with a Retry-After header and the
standard error envelope. /health, the docs and the WebSocket endpoint are
outside /api and never limited.

State is in-process: with several workers each enforces its own limit.
"""

import logging
import time
from collections import defaultdict, deque
from typing import Deque, Dict

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from wifiatlas.config import settings
from wifiatlas.exceptions import RateLimitExceededError
from wifiatlas.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)

LIMITED_PREFIX = "/api"

# Sweep idle IPs after this many tracked requests
CLEANUP_EVERY = 1000


class RateLimitMiddleware(BaseHTTPMiddleware):

    def __init__(self, app, **kwargs):
        super().__init__(app, **kwargs)
        self._requests: Dict[str, Deque[float]] = defaultdict(deque)
        self._since_cleanup = 0

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if not request.url.path.startswith(LIMITED_PREFIX):
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        now = time.time()
        window_start = now - settings.rate_limit_window

        timestamps = self._requests[client_ip]
        while timestamps and timestamps[0] <= window_start:
            timestamps.popleft()

        if len(timestamps) >= settings.rate_limit_requests:
            retry_after = int(timestamps[0] + settings.rate_limit_window - now) + 1
            logger.warning(
                "Rate limit exceeded for IP %s: %d requests in %ds window",
                client_ip,
                len(timestamps),
                settings.rate_limit_window,
            )
            exc = RateLimitExceededError(retry_after=retry_after)
            return JSONResponse(
                status_code=exc.status_code,
                content={
                    "error": {
                        "message": exc.message,
                        "status": exc.status_code,
                        "code": exc.code,
                        "request_id": request_id_var.get("") or None,
                    }
                },
                headers={"Retry-After": str(retry_after)},
            )

        timestamps.append(now)

        self._since_cleanup += 1
        if self._since_cleanup >= CLEANUP_EVERY:
            self._since_cleanup = 0
            self._cleanup_inactive_ips(window_start)

        return await call_next(request)

    def _cleanup_inactive_ips(self, window_start: float) -> None:
        inactive = [
            ip for ip, timestamps in self._requests.items()
            if not timestamps or timestamps[-1] <= window_start
        ]
        for ip in inactive:
            del self._requests[ip]
        if inactive:
            logger.debug("Cleaned up %d inactive IP entries", len(inactive))
