"""
Tourbook Backend — Rate Limiting Middleware
============================================

What:  Per-IP sliding window rate limiter for the API.
Why:   Keeps a single client from hammering /api (brute force, scraping).
How:   Tracks request timestamps per IP in memory using a sliding window.
Who:   Mounted on every request but only counts paths under the configured
       prefix (default /api). View pages, static assets and /health are free.

Algorithm: Sliding Window Log
    1. Each IP gets a list of request timestamps
    2. On each request, drop timestamps older than the window
    3. If the remaining count >= limit, reject with 429
    4. Otherwise record the current timestamp and let the request through

    Defaults: 100 requests per 3600 seconds. Request 101 inside any rolling
    hour is rejected with "Too many requests from this IP, please try again
    in an hour!".

Response headers:
    X-RateLimit-Limit      configured maximum
    X-RateLimit-Remaining  requests left in the current window
    Retry-After            (429 only) seconds until the oldest request expires

State lives in the middleware instance, so it is per-process. Each app built
by create_app() starts with empty counters.
"""

import logging
import time
from collections import defaultdict
from typing import Callable, Dict, List

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from tourbook.errors import error_response
from tourbook.exceptions import RateLimitExceededError

logger = logging.getLogger(__name__)

# Inactive IPs are swept every N recorded requests
CLEANUP_INTERVAL = 1000


class RateLimitMiddleware(BaseHTTPMiddleware):
    """In-memory sliding window rate limiter scoped to a path prefix."""

    def __init__(
        self,
        app: ASGIApp,
        max_requests: int = 100,
        window_seconds: int = 3600,
        path_prefix: str = "/api",
        message: str | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__(app)
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.path_prefix = path_prefix.rstrip("/")
        self.message = message
        self._clock = clock
        self._requests: Dict[str, List[float]] = defaultdict(list)
        self._recorded = 0

    def applies_to(self, path: str) -> bool:
        if not self.path_prefix:
            return True
        return path == self.path_prefix or path.startswith(self.path_prefix + "/")

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if not self.applies_to(request.url.path):
            return await call_next(request)

        # With trust_proxy enabled this is already the X-Forwarded-For client
        client_ip = request.client.host if request.client else "unknown"

        now = self._clock()
        window_start = now - self.window_seconds

        timestamps = [ts for ts in self._requests[client_ip] if ts > window_start]
        self._requests[client_ip] = timestamps

        if len(timestamps) >= self.max_requests:
            retry_after = int(timestamps[0] + self.window_seconds - now) + 1
            logger.warning(
                "Rate limit exceeded for IP %s: %d requests in %ds window",
                client_ip,
                len(timestamps),
                self.window_seconds,
            )
            exc = RateLimitExceededError(retry_after=retry_after, message=self.message)
            return error_response(
                exc,
                headers={
                    "Retry-After": str(retry_after),
                    "X-RateLimit-Limit": str(self.max_requests),
                    "X-RateLimit-Remaining": "0",
                },
            )

        timestamps.append(now)
        remaining = self.max_requests - len(timestamps)

        self._recorded += 1
        if self._recorded % CLEANUP_INTERVAL == 0:
            self._cleanup_inactive_ips(window_start)

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(self.max_requests)
        response.headers["X-RateLimit-Remaining"] = str(remaining)
        return response

    def _cleanup_inactive_ips(self, window_start: float) -> None:
        """Remove IPs that have no requests within the current window."""
        inactive_ips = [
            ip for ip, timestamps in self._requests.items()
            if not timestamps or timestamps[-1] <= window_start
        ]
        for ip in inactive_ips:
            del self._requests[ip]

        if inactive_ips:
            logger.debug("Cleaned up %d inactive IP entries", len(inactive_ips))
