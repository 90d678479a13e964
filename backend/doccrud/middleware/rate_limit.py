"""
DocCRUD Backend - Rate Limiting Middleware
============================================

What:  Per-IP sliding-window request limit.
How:   Each client IP maps to the timestamps of its recent requests. On every
       request, timestamps older than the window are dropped; if the client
       still has `max_requests` in the window the request is answered with 429
       and a Retry-After header, otherwise it is recorded and passed on.

State lives in process memory, so each worker process enforces its own limit.
"""

import logging
import time
from collections import defaultdict, deque
from typing import Deque, Dict, Iterable, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

from doccrud.config import settings
from doccrud.exceptions import RateLimitExceededError
from doccrud.middleware.request_id import REQUEST_ID_HEADER

logger = logging.getLogger(__name__)

EXCLUDED_PATHS = frozenset({"/health", "/docs", "/openapi.json", "/redoc"})

# Inactive IPs are swept after this many recorded requests
_SWEEP_EVERY = 1000


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Args:
        max_requests:   Requests allowed per window (default: RATE_LIMIT_REQUESTS)
        window_seconds: Window length (default: RATE_LIMIT_WINDOW)
        enabled:        When False every request passes (default: RATE_LIMIT_ENABLED)
        excluded_paths: Paths never counted
    """

    def __init__(
        self,
        app: ASGIApp,
        max_requests: Optional[int] = None,
        window_seconds: Optional[int] = None,
        enabled: Optional[bool] = None,
        excluded_paths: Iterable[str] = EXCLUDED_PATHS,
    ):
        super().__init__(app)
        self.max_requests = max_requests or settings.rate_limit_requests
        self.window_seconds = window_seconds or settings.rate_limit_window
        self.enabled = settings.rate_limit_enabled if enabled is None else enabled
        self.excluded_paths = frozenset(excluded_paths)
        self._requests: Dict[str, Deque[float]] = defaultdict(deque)
        self._recorded = 0

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if not self.enabled or request.url.path in self.excluded_paths:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        now = time.time()
        window_start = now - self.window_seconds

        timestamps = self._requests[client_ip]
        while timestamps and timestamps[0] <= window_start:
            timestamps.popleft()

        if len(timestamps) >= self.max_requests:
            retry_after = int(timestamps[0] + self.window_seconds - now) + 1
            exc = RateLimitExceededError(retry_after=retry_after)
            logger.warning(
                "Rate limit exceeded for IP %s: %d requests in %ds window",
                client_ip,
                len(timestamps),
                self.window_seconds,
            )
            return JSONResponse(
                status_code=429,
                content={
                    "error": "rate_limit_exceeded",
                    "message": exc.message,
                    "details": exc.context,
                    "request_id": request.headers.get(REQUEST_ID_HEADER, ""),
                },
                headers={"Retry-After": str(retry_after)},
            )

        timestamps.append(now)
        self._recorded += 1
        if self._recorded % _SWEEP_EVERY == 0:
            self._sweep(window_start)

        return await call_next(request)

    def _sweep(self, window_start: float) -> None:
        """Forgets IPs with no request inside the current window."""
        inactive = [
            ip for ip, timestamps in self._requests.items()
            if not timestamps or timestamps[-1] <= window_start
        ]
        for ip in inactive:
            del self._requests[ip]
        if inactive:
            logger.debug("Cleaned up %d inactive IP entries", len(inactive))
