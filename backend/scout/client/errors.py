"""
Client-side failures.

    ClientError (base, a ScoutError)
    ├── TransportFailure    → no HTTP response (DNS, refused, reset, timeout)
    ├── ApplicationFailure  → a response with a non-2xx status
    └── DecodeFailure       → 2xx, but the body is not the declared type
"""

from typing import Any, Dict, Optional

from scout.exceptions import ScoutError


class ClientError(ScoutError):
    """Base for everything RequestExecutor.execute() raises."""

    error_code = "client_error"


class TransportFailure(ClientError):
    error_code = "transport_failure"


class ApplicationFailure(ClientError):
    """
    The server answered with a non-2xx status.

    The message embeds the status code and the raw body text verbatim:
        HTTP error! status: 404 - {"error":"not_found",...}
    """

    error_code = "application_failure"

    def __init__(self, status_code: int, body: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message=f"HTTP error! status: {status_code} - {body}", context=context)
        self.status_code = status_code
        self.body = body


class DecodeFailure(ClientError):
    error_code = "decode_failure"

    def __init__(self, message: str, body: str = "", context: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, context=context)
        self.body = body
