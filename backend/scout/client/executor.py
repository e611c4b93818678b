"""
Knowledge Scout Client - Typed Request Executor
===============================================

What:  The one place every API call goes through.
How:   execute(descriptor, response_type):
       1. target = base_url + endpoint
       2. MultipartBody → httpx files/data, no Content-Type from us (httpx
          writes the multipart boundary); anything else → JSON
       3. token present → Authorization: Bearer <token>
       4. caller headers applied last (they override the defaults)
       5. non-2xx → ApplicationFailure with status and raw body text
       6. 2xx → JSON validated into `response_type`

No retries, no caching, no shared mutable state: each call opens its own
httpx.AsyncClient over the injected transport, so concurrent calls never
interfere. asyncio cancellation passes through untouched.
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, Union

import httpx
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from scout.client.errors import ApplicationFailure, DecodeFailure, TransportFailure

logger = logging.getLogger("scout.client")

DEFAULT_TIMEOUT_SECONDS = 30.0

# (filename, content, content type)
FileTuple = Tuple[str, bytes, str]
TokenSource = Callable[[], Optional[str]]


@dataclass(frozen=True)
class MultipartBody:
    """Binary upload: sent as multipart/form-data."""

    files: Mapping[str, FileTuple]
    data: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class RequestDescriptor:
    endpoint: str
    method: str = "GET"
    headers: Mapping[str, str] = field(default_factory=dict)
    params: Mapping[str, str] = field(default_factory=dict)
    body: Union[None, MultipartBody, Any] = None

    @property
    def body_kind(self) -> str:
        if self.body is None:
            return "none"
        if isinstance(self.body, MultipartBody):
            return "multipart"
        return "json"


class RequestExecutor:
    """
    Args:
        base_url:     Prefix for every endpoint (e.g., http://localhost:5000/api)
        token_source: Called on every request; returns the bearer token or None
        transport:    httpx transport (ASGITransport / MockTransport in tests)
        timeout:      Total per-request deadline in seconds; None disables it
    """

    def __init__(
        self,
        base_url: str,
        token_source: TokenSource = lambda: None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: Optional[float] = DEFAULT_TIMEOUT_SECONDS,
    ):
        self.base_url = base_url.rstrip("/")
        self.token_source = token_source
        self.transport = transport
        self.timeout = timeout

    def build_headers(self, descriptor: RequestDescriptor) -> httpx.Headers:
        headers = httpx.Headers()
        if descriptor.body_kind != "multipart":
            headers["Content-Type"] = "application/json"

        token = self.token_source()
        if token:
            headers["Authorization"] = f"Bearer {token}"

        # Case-insensitive: "authorization" from a caller replaces ours
        headers.update(descriptor.headers)
        return headers

    async def _send(self, descriptor: RequestDescriptor, url: str) -> httpx.Response:
        request_kwargs: Dict[str, Any] = {
            "headers": self.build_headers(descriptor),
            "params": dict(descriptor.params) or None,
        }
        if isinstance(descriptor.body, MultipartBody):
            request_kwargs["files"] = dict(descriptor.body.files)
            request_kwargs["data"] = dict(descriptor.body.data) or None
        elif descriptor.body is not None:
            request_kwargs["content"] = json.dumps(descriptor.body)

        async with httpx.AsyncClient(
            transport=self.transport,
            timeout=httpx.Timeout(self.timeout),
        ) as client:
            return await client.request(descriptor.method, url, **request_kwargs)

    async def execute(self, descriptor: RequestDescriptor, response_type: Any = dict) -> Any:
        """
        Run one request and return the body validated as `response_type`.

        `response_type` is anything pydantic's TypeAdapter accepts: a model,
        a discriminated union, `dict`.

        Raises:
            TransportFailure:   no response (connection error or deadline)
            ApplicationFailure: non-2xx status
            DecodeFailure:      2xx body that is not valid JSON of the type
        """
        url = self.base_url + descriptor.endpoint
        logger.debug(
            "→ %s %s (body=%s, kind=%s)",
            descriptor.method,
            url,
            descriptor.body is not None,
            descriptor.body_kind,
        )

        try:
            if self.timeout is None:
                response = await self._send(descriptor, url)
            else:
                response = await asyncio.wait_for(self._send(descriptor, url), self.timeout)
        except asyncio.TimeoutError as e:
            raise TransportFailure(
                f"Request to {url} timed out after {self.timeout}s",
                context={"url": url, "method": descriptor.method},
            ) from e
        except httpx.TransportError as e:
            raise TransportFailure(
                f"Request to {url} failed: {e!r}",
                context={"url": url, "method": descriptor.method},
            ) from e

        logger.debug("← %s %s %d", descriptor.method, url, response.status_code)

        if not response.is_success:
            raise ApplicationFailure(
                response.status_code,
                response.text,
                context={"url": url, "method": descriptor.method},
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise DecodeFailure(f"Response from {url} is not valid JSON", body=response.text) from e

        try:
            return TypeAdapter(response_type).validate_python(payload)
        except PydanticValidationError as e:
            raise DecodeFailure(
                f"Response from {url} does not match the expected shape: {e.error_count()} error(s)",
                body=response.text,
                context={"errors": e.errors(include_url=False)},
            ) from e
