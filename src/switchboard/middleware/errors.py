# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Error handling middleware - last line of defence around dispatch.

Routers already answer their own failures through error callbacks, so
this middleware only sees what escaped them: a failing error callback, a
custom root router that raises, a middleware further in.

Exception handling:
    - Redirect: 3xx response with Location header
    - HTTPException: status code with detail message
    - Exception: 500 Internal Server Error

When the response has already started nothing else is sent: the
exception is logged and the connection is left to the ASGI server.

Config:
    debug (bool): Include traceback in 500 responses. Default: False.

Example::

    errors_middleware:
      debug: true
"""

from __future__ import annotations

import logging
import traceback
from typing import TYPE_CHECKING, Any

from . import BaseMiddleware
from ..exceptions import HTTPException, Redirect

if TYPE_CHECKING:
    from ..types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger("switchboard.errors")


class ErrorMiddleware(BaseMiddleware):
    """Convert exceptions escaping dispatch into HTTP error responses.

    Attributes:
        debug: If True, include stack traces in 500 error responses.

    Class Attributes:
        middleware_name: "errors"
        middleware_order: 100, outermost.
        middleware_default: True
    """

    middleware_name = "errors"
    middleware_order = 100
    middleware_default = True

    __slots__ = ("debug",)

    def __init__(self, app: ASGIApp, debug: bool = False, **kwargs: Any) -> None:
        super().__init__(app, **kwargs)
        self.debug = debug

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        started = False

        async def tracking_send(message: Message) -> None:
            nonlocal started
            if message["type"] == "http.response.start":
                started = True
            await send(message)

        try:
            await self.app(scope, receive, tracking_send)
        except Exception as e:
            if started:
                logger.error(
                    f"Error after response started for {scope.get('path', '/')}", exc_info=e
                )
                return
            if isinstance(e, Redirect):
                await self._send_redirect(send, e)
            elif isinstance(e, HTTPException):
                await self._send_http_error(send, e)
            else:
                logger.error(f"Unhandled error for {scope.get('path', '/')}", exc_info=e)
                await self._send_server_error(send, e)

    async def _send_redirect(self, send: Send, exc: Redirect) -> None:
        await send(
            {
                "type": "http.response.start",
                "status": exc.status_code,
                "headers": [(b"location", exc.url.encode("latin-1"))],
            }
        )
        await send({"type": "http.response.body", "body": b""})

    async def _send_http_error(self, send: Send, exc: HTTPException) -> None:
        """Send ``exc.detail`` as a plain-text body with ``exc.status_code``.

        Extra headers carried by the exception are appended.
        """
        body_bytes = (exc.detail or "").encode("utf-8")
        headers: list[tuple[bytes, bytes]] = [
            (b"content-type", b"text/plain; charset=utf-8"),
            (b"content-length", str(len(body_bytes)).encode()),
        ]
        if exc.headers:
            headers.extend((k.lower().encode("latin-1"), v.encode("latin-1")) for k, v in exc.headers)
        await send({"type": "http.response.start", "status": exc.status_code, "headers": headers})
        await send({"type": "http.response.body", "body": body_bytes})

    async def _send_server_error(self, send: Send, error: Exception) -> None:
        if self.debug:
            trace = "".join(traceback.format_exception(type(error), error, error.__traceback__))
            body = f"Internal Server Error\n\n{trace}"
        else:
            body = "Internal Server Error"
        body_bytes = body.encode("utf-8")
        await send(
            {
                "type": "http.response.start",
                "status": 500,
                "headers": [
                    (b"content-type", b"text/plain; charset=utf-8"),
                    (b"content-length", str(len(body_bytes)).encode()),
                ],
            }
        )
        await send({"type": "http.response.body", "body": body_bytes})
