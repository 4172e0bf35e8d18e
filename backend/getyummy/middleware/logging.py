"""
Get Yummy Backend - Access Log Middleware
=========================================

What:  One line per request on the `getyummy.access` logger.
How:   The auth dependencies leave `user_id` (and `token_refreshed` when the
       lenient policy minted a new access token) on request.state; this
       middleware reads them after the handler ran. Level follows the status
       class.

    GET /recipes/3 200 4.2ms user=7 refreshed [a1b2c3d4]
    POST /auth/login 401 81.0ms user=- [9f8e7d6c]

Never logged: request bodies, cookies, Authorization headers.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from getyummy.middleware.request_id import request_id_var

logger = logging.getLogger("getyummy.access")

# Probed every few seconds by the orchestrator
QUIET_PATHS = frozenset({"/health"})


def level_for_status(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in QUIET_PATHS:
            return await call_next(request)

        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        user_id = getattr(request.state, "user_id", None)
        refreshed = getattr(request.state, "token_refreshed", False)
        rid = request_id_var.get("")

        logger.log(
            level_for_status(response.status_code),
            "%s %s %d %.1fms user=%s%s [%s]",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            user_id if user_id is not None else "-",
            " refreshed" if refreshed else "",
            rid,
            extra={
                "request_id": rid,
                "user_id": user_id,
                "token_refreshed": refreshed,
                "status": response.status_code,
                "duration_ms": round(elapsed_ms, 2),
            },
        )
        return response
