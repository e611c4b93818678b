"""Security headers middleware.

Adds standard security headers to all HTTP responses:
- HSTS: Force HTTPS (production only)
- CSP: Content Security Policy
- X-Content-Type-Options: Prevent MIME sniffing
- X-Frame-Options: Prevent clickjacking
- Referrer-Policy: Control referrer information
"""

from typing import Any, Callable, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# 1 year in seconds
DEFAULT_HSTS_MAX_AGE = 31536000


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Adds security headers after the response is generated.

    HSTS is only sent in production so local development over plain HTTP
    keeps working.
    """

    def __init__(
        self,
        app: Callable[..., Any],
        enable_hsts: bool = False,
        hsts_max_age: int = DEFAULT_HSTS_MAX_AGE,
    ) -> None:
        super().__init__(app)
        self._enable_hsts = enable_hsts
        self._hsts_max_age = hsts_max_age

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)

        if self._enable_hsts:
            response.headers["Strict-Transport-Security"] = (
                f"max-age={self._hsts_max_age}; includeSubDomains"
            )

        # API-only backend: nothing may be framed or loaded from responses
        response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Cross-Origin-Resource-Policy"] = "cross-origin"
        # Deprecated header; OWASP recommends disabling it explicitly
        response.headers["X-XSS-Protection"] = "0"

        return response
