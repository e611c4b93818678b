"""
Structured error responses.

Every error the server produces, whether from an exception handler or
from a middleware that short-circuits, has the same body:

    {"error": <code>, "message": <text>, "details": {...}?, "request_id": <id>}
"""

from typing import Any, Dict, Mapping, Optional

from starlette.responses import JSONResponse

from scout.middleware.request_id import request_id_var


def error_response(
    status_code: int,
    error: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
    headers: Optional[Mapping[str, str]] = None,
) -> JSONResponse:
    content: Dict[str, Any] = {"error": error, "message": message}
    if details:
        content["details"] = details
    content["request_id"] = request_id_var.get("")
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def internal_error_response(exc: BaseException, expose_detail: bool) -> JSONResponse:
    """500 internal_server_error; the exception text only when expose_detail."""
    details = None
    if expose_detail:
        details = {"exception": type(exc).__name__, "detail": str(exc)}
    return error_response(500, "internal_server_error", "Internal server error", details=details)
