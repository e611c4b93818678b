"""
Knowledge Scout Backend - Access Log Middleware
===============================================

What:  One line per HTTP request on the `scout.access` logger.
How:   Times the downstream call, then logs method, path, status, duration,
       response size, request ID and client IP. 5xx logs at ERROR, 4xx and
       slow requests at WARNING, everything else at INFO.

Never logged: request bodies, uploaded files, Authorization headers.
"""

import logging
import time
from typing import Iterable

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from scout.middleware.request_id import request_id_var

logger = logging.getLogger("scout.access")

DEFAULT_SLOW_MS = 2000.0


def level_for(status: int, duration_ms: float, slow_ms: float) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400 or duration_ms >= slow_ms:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Args:
        quiet_paths: Exact paths never logged (liveness probes)
        slow_ms:     Duration from which a successful request logs at WARNING
    """

    def __init__(
        self,
        app: ASGIApp,
        quiet_paths: Iterable[str] = ("/health",),
        slow_ms: float = DEFAULT_SLOW_MS,
    ) -> None:
        super().__init__(app)
        self.quiet_paths = frozenset(quiet_paths)
        self.slow_ms = slow_ms

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path in self.quiet_paths:
            return await call_next(request)

        started = time.perf_counter()
        peer = request.client.host if request.client else "-"
        line = f"{request.method} {request.url.path}"

        try:
            response = await call_next(request)
        except Exception:
            elapsed = (time.perf_counter() - started) * 1000
            logger.error("%s raised after %.1fms [%s] from %s", line, elapsed, request_id_var.get(""), peer)
            raise

        elapsed = (time.perf_counter() - started) * 1000
        logger.log(
            level_for(response.status_code, elapsed, self.slow_ms),
            "%s %d %.1fms %sB [%s] from %s",
            line,
            response.status_code,
            elapsed,
            response.headers.get("content-length", "-"),
            request_id_var.get(""),
            peer,
        )
        return response
