"""Request-level middleware: security headers and a per-client rate limiter."""

import logging
import math
import threading
import time
from collections import defaultdict, deque
from typing import Callable, Deque, Dict, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

logger = logging.getLogger(__name__)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "X-XSS-Protection": "0",
    "Cross-Origin-Resource-Policy": "same-origin",
}


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response


class RateLimiter:
    """
    Sliding-window request counter keyed by client.

    Each key keeps the timestamps of its requests inside the window; a request
    is allowed while fewer than ``max_requests`` remain.
    """

    def __init__(
        self,
        max_requests: int = 100,
        window_seconds: float = 900,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._hits: Dict[str, Deque[float]] = defaultdict(deque)
        self._last_sweep = clock()

    def hit(self, key: str) -> Optional[float]:
        """Record a request for ``key``.

        Returns None when the request is allowed, otherwise the number of
        seconds until the oldest request leaves the window.
        """
        now = self._clock()
        with self._lock:
            if now - self._last_sweep >= self.window_seconds:
                self._sweep(now)
            hits = self._hits[key]
            while hits and now - hits[0] >= self.window_seconds:
                hits.popleft()
            if len(hits) >= self.max_requests:
                return self.window_seconds - (now - hits[0])
            hits.append(now)
            return None

    def _sweep(self, now: float) -> None:
        # drop clients whose newest request has left the window
        stale = [key for key, hits in self._hits.items() if not hits or now - hits[-1] >= self.window_seconds]
        for key in stale:
            del self._hits[key]
        self._last_sweep = now
        if stale:
            logger.debug("Rate limiter dropped %d idle clients", len(stale))


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, limiter: RateLimiter, path_prefix: str = "/api/"):
        super().__init__(app)
        self.limiter = limiter
        self.path_prefix = path_prefix

    async def dispatch(self, request: Request, call_next):
        if not request.url.path.startswith(self.path_prefix):
            return await call_next(request)

        client = request.client.host if request.client else "unknown"
        retry_after = self.limiter.hit(client)
        if retry_after is not None:
            logger.warning("Rate limit exceeded for %s on %s", client, request.url.path)
            return JSONResponse(
                status_code=429,
                content={"error": "Too many requests, please try again later."},
                headers={"Retry-After": str(max(1, math.ceil(retry_after)))},
            )
        return await call_next(request)
