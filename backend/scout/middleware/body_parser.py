"""
Knowledge Scout Backend - Conditional JSON Body Parser
======================================================

What:  Reads and parses JSON request bodies for every path except the
       document upload endpoint.
Why:   Malformed or oversized JSON is rejected here with a structured error
       before any route runs. The upload endpoint streams multipart data
       straight to its handler; reading it here would buffer the whole file
       and parsing it as JSON would fail.
How:   Pure ASGI middleware (not BaseHTTPMiddleware) because it must
       consume `receive` and then replay the buffered body downstream.
       The skip decision uses only the scope path, so no body byte of a
       skipped request is ever read by this layer.
"""

import json
import logging
from typing import Iterable

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from scout.responses import error_response

logger = logging.getLogger(__name__)

# Methods whose bodies are never parsed
BODYLESS_METHODS = {"GET", "HEAD", "OPTIONS"}


def is_json_content_type(content_type: str) -> bool:
    media_type = content_type.split(";", 1)[0].strip().lower()
    return media_type == "application/json" or media_type.endswith("+json")


class JSONBodyParserMiddleware:
    """
    Args:
        app:        Downstream ASGI app
        skip_paths: Exact paths that bypass parsing (the upload endpoint)
        limit:      Maximum JSON body size in bytes (413 beyond it)
    """

    def __init__(self, app: ASGIApp, skip_paths: Iterable[str], limit: int) -> None:
        self.app = app
        self.skip_paths = frozenset(skip_paths)
        self.limit = limit

    def should_parse(self, scope: Scope) -> bool:
        if scope["type"] != "http":
            return False
        if scope["path"] in self.skip_paths:
            return False
        if scope["method"] in BODYLESS_METHODS:
            return False
        headers = dict(scope.get("headers") or [])
        content_type = headers.get(b"content-type", b"").decode("latin-1")
        return is_json_content_type(content_type)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if not self.should_parse(scope):
            await self.app(scope, receive, send)
            return

        headers = dict(scope.get("headers") or [])
        declared = headers.get(b"content-length")
        if declared is not None and declared.isdigit() and int(declared) > self.limit:
            await self._too_large(scope, receive, send)
            return

        # ── Buffer the body, enforcing the limit while reading ────────────
        chunks = []
        size = 0
        more_body = True
        while more_body:
            message = await receive()
            if message["type"] == "http.disconnect":
                return
            chunk = message.get("body", b"")
            size += len(chunk)
            if size > self.limit:
                await self._too_large(scope, receive, send)
                return
            chunks.append(chunk)
            more_body = message.get("more_body", False)
        body = b"".join(chunks)

        if body.strip():
            try:
                json.loads(body)
            except ValueError as e:
                logger.info("Rejected malformed JSON on %s: %s", scope["path"], e)
                response = error_response(
                    400,
                    "invalid_json",
                    "Request body is not valid JSON",
                    details={"position": getattr(e, "pos", None)},
                )
                await response(scope, receive, send)
                return

        # ── Replay the buffered body to the route ─────────────────────────
        replayed = False

        async def replay() -> Message:
            nonlocal replayed
            if not replayed:
                replayed = True
                return {"type": "http.request", "body": body, "more_body": False}
            return await receive()

        await self.app(scope, replay, send)

    async def _too_large(self, scope: Scope, receive: Receive, send: Send) -> None:
        logger.warning("Rejected JSON body over %d bytes on %s", self.limit, scope["path"])
        response = error_response(
            413,
            "payload_too_large",
            f"Request body exceeds maximum size of {self.limit} bytes",
            details={"max_size": self.limit},
        )
        await response(scope, receive, send)
