"""
Get Yummy Backend - Credential Endpoint Rate Limiting
=====================================================

What:  Per-IP sliding window limiter for the credential endpoints (login,
       register, forgot/reset password).
How:   Keeps the timestamps of recent requests per client IP in memory.
       Requests to any other path pass through untouched.

Algorithm: Sliding Window Log
    1. Drop the client's timestamps older than the window
    2. If the remaining count >= limit, reject with 429 + Retry-After
    3. Otherwise record the request and let it through

    Unlike a fixed window, a burst straddling a window boundary cannot
    double the allowed rate.

Scope:
    Single-process state. With several uvicorn workers each worker
    enforces the limit on its own.
"""

import logging
import time
from collections import defaultdict
from typing import Dict, Iterable, List

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from getyummy.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)

DEFAULT_LIMITED_PATHS = (
    "/auth/login",
    "/auth/register",
    "/auth/forgot-password",
    "/auth/reset-password",
)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    In-memory sliding window rate limiter.

    Args:
        max_requests:   requests allowed per client IP within the window
        window_seconds: window length
        paths:          exact request paths the limit applies to
    """

    def __init__(
        self,
        app,
        max_requests: int = 20,
        window_seconds: int = 900,
        paths: Iterable[str] = DEFAULT_LIMITED_PATHS,
    ):
        super().__init__(app)
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.paths = frozenset(paths)
        self._requests: Dict[str, List[float]] = defaultdict(list)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path not in self.paths or request.method == "OPTIONS":
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        now = time.time()
        window_start = now - self.window_seconds

        recent = [ts for ts in self._requests[client_ip] if ts > window_start]
        self._requests[client_ip] = recent

        if len(recent) >= self.max_requests:
            retry_after = int(recent[0] + self.window_seconds - now) + 1
            logger.warning(
                "Rate limit exceeded for IP %s on %s: %d requests in %ds window",
                client_ip,
                request.url.path,
                len(recent),
                self.window_seconds,
            )
            return JSONResponse(
                status_code=429,
                content={
                    "error": "rate_limit_exceeded",
                    "message": f"Too many attempts. Please wait {retry_after} seconds before retrying.",
                    "details": {"retry_after": retry_after},
                    "request_id": request_id_var.get(""),
                },
                headers={"Retry-After": str(retry_after)},
            )

        recent.append(now)

        # Amortized sweep so idle IPs don't accumulate forever
        if len(self._requests) > 1000:
            self._cleanup_inactive_ips(window_start)

        return await call_next(request)

    def _cleanup_inactive_ips(self, window_start: float) -> None:
        inactive_ips = [
            ip for ip, timestamps in self._requests.items()
            if not timestamps or timestamps[-1] <= window_start
        ]
        for ip in inactive_ips:
            del self._requests[ip]

        if inactive_ips:
            logger.debug("Cleaned up %d inactive IP entries", len(inactive_ips))
