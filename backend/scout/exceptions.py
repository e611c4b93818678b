"""
Knowledge Scout Backend - Custom Exception Hierarchy
====================================================

What:  Application-specific exceptions for the server side of the pipeline.
Why:   Services raise domain errors; global handlers in main.py turn them
       into structured JSON responses with the right HTTP status code.
How:   Each exception carries a user-facing message, a context dict that is
       logged but not always returned, and the status/error code the
       handler should use.

Exception Hierarchy:
    ScoutError (base)
    ├── ValidationError          → 400 Bad Request
    ├── AuthenticationError      → 401 Unauthorized
    ├── PermissionDeniedError    → 403 Forbidden
    ├── NotFoundError            → 404 Not Found
    ├── ConflictError            → 409 Conflict
    ├── PayloadTooLargeError     → 413 Payload Too Large
    ├── ExtractionError          → 422 Unprocessable Entity
    ├── FileStorageError         → 500 Internal Server Error
    ├── DatabaseError            → 500 Internal Server Error
    ├── LLMServiceError          → 503 Service Unavailable
    └── CircuitBreakerOpenError  → 503 Service Unavailable

Client-side failures (transport/application/decode) live in
scout.client.errors and share the ScoutError root.
"""

from typing import Any, Dict, Optional


class ScoutError(Exception):
    """
    Base exception for all Knowledge Scout errors.

    Attributes:
        message:  User-facing error description
        context:  Additional debug info (logged; returned only as `details`
                  by handlers that choose to expose it)
    """

    status_code: int = 500
    error_code: str = "server_error"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(ScoutError):
    """Client input failed a business rule (file type, size, empty message)."""

    status_code = 400
    error_code = "validation_error"

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class AuthenticationError(ScoutError):
    """
    Missing, malformed or expired bearer token, or bad credentials.

    HTTP: 401 with `WWW-Authenticate: Bearer`.
    """

    status_code = 401
    error_code = "unauthorized"

    def __init__(
        self,
        message: str = "Authentication required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class PermissionDeniedError(ScoutError):
    """Authenticated, but acting on behalf of another user."""

    status_code = 403
    error_code = "forbidden"

    def __init__(
        self,
        message: str = "You do not have access to this resource",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(ScoutError):
    """
    Raised when a requested resource does not exist.

    Documents and sessions owned by another user also raise this, so ids
    of foreign resources cannot be probed.
    """

    status_code = 404
    error_code = "not_found"

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class ConflictError(ScoutError):
    """Resource already exists (e.g., registering a taken email)."""

    status_code = 409
    error_code = "conflict"


class PayloadTooLargeError(ScoutError):
    status_code = 413
    error_code = "payload_too_large"

    def __init__(self, limit: int, context: Optional[Dict[str, Any]] = None):
        ctx = context or {}
        ctx["max_size"] = limit
        super().__init__(
            message=f"Request body exceeds maximum size of {limit} bytes",
            context=ctx,
        )
        self.limit = limit


class FileStorageError(ScoutError):
    """
    File system operation failed (disk full, permission denied, I/O error).

    The message returned to clients never includes storage paths.
    """

    status_code = 500
    error_code = "server_error"

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(ScoutError):
    """
    Database operation failed unexpectedly.

    Security Note:
        The message returned to the client is always generic. Query text and
        constraint names are logged server-side only.
    """

    status_code = 500
    error_code = "server_error"

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class LLMServiceError(ScoutError):
    """
    The LLM provider failed after all retries.

    HTTP: 503 with an optional Retry-After header.
    """

    status_code = 503
    error_code = "llm_service_error"

    def __init__(
        self,
        message: str = "AI service is temporarily unavailable",
        retry_after: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if retry_after:
            ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class CircuitBreakerOpenError(ScoutError):
    """
    Raised while the LLM circuit breaker is OPEN.

    CLOSED → (threshold failures) → OPEN → (recovery timeout) → HALF_OPEN
    → success: CLOSED / failure: OPEN
    """

    status_code = 503
    error_code = "service_unavailable"

    def __init__(
        self,
        recovery_time: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            "AI service is temporarily unavailable due to repeated failures. "
            f"Retry in approximately {recovery_time} seconds."
        )
        ctx = context or {}
        ctx["recovery_time"] = recovery_time
        super().__init__(message=message, context=ctx)
        self.recovery_time = recovery_time


class ExtractionError(ScoutError):
    """
    Text could not be extracted from a stored document.

    Recorded on the document (status 'failed') by background processing;
    only surfaces as HTTP 422 when a route asks for text that is not there.
    """

    status_code = 422
    error_code = "extraction_failed"
