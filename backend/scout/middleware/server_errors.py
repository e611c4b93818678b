"""
Knowledge Scout Backend - Unhandled Error Middleware
====================================================

What:  Turns any exception a route lets escape into the structured 500
       payload, inside the middleware chain.
How:   Pure ASGI, added innermost (below the JSON body parser). Route
       exceptions stop here, so every 500 travels back out through the
       security headers, CORS and request ID layers.

If the route already started its response, the exception is re-raised:
the status line is on the wire and cannot be replaced.
"""

import logging

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from scout.middleware.request_id import request_id_var
from scout.responses import internal_error_response

logger = logging.getLogger(__name__)


class UnhandledErrorMiddleware:
    """
    Args:
        app:           Downstream ASGI app
        expose_detail: Include the exception type and text in `details`
                       (everywhere except production)
    """

    def __init__(self, app: ASGIApp, expose_detail: bool = False) -> None:
        self.app = app
        self.expose_detail = expose_detail

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def send_wrapper(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as exc:
            logger.error("[%s] Unexpected error: %s", request_id_var.get(""), str(exc), exc_info=True)
            if response_started:
                raise
            response = internal_error_response(exc, self.expose_detail)
            await response(scope, receive, send)
