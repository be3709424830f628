# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Timeout middleware - bound the time a request may spend in dispatch.

When dispatch outlives ``seconds`` it is cancelled. If no response has
started yet the client gets ``504 Gateway Timeout``; otherwise the
partial response is abandoned and the ASGI server closes the connection.

Config::

    middleware:
      timeout: on

    timeout_middleware:
      seconds: 10
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from . import BaseMiddleware

if TYPE_CHECKING:
    from ..types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger("switchboard.timeout")

TIMEOUT_BODY = b"Gateway Timeout"


class TimeoutMiddleware(BaseMiddleware):
    """Cancel dispatch after ``seconds`` and answer 504 when possible.

    Class Attributes:
        middleware_name: "timeout"
        middleware_order: 300
        middleware_default: False
    """

    middleware_name = "timeout"
    middleware_order = 300
    middleware_default = False

    __slots__ = ("seconds",)

    def __init__(self, app: ASGIApp, seconds: float = 30, **kwargs: Any) -> None:
        super().__init__(app, **kwargs)
        if seconds <= 0:
            raise ValueError(f"timeout must be positive, got {seconds!r}")
        self.seconds = float(seconds)

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
            await asyncio.wait_for(self.app(scope, receive, tracking_send), self.seconds)
        except asyncio.TimeoutError:
            logger.warning(f"Timeout after {self.seconds}s for {scope.get('path', '/')}")
            if started:
                raise
            await send(
                {
                    "type": "http.response.start",
                    "status": 504,
                    "headers": [
                        (b"content-type", b"text/plain; charset=utf-8"),
                        (b"content-length", str(len(TIMEOUT_BODY)).encode()),
                    ],
                }
            )
            await send({"type": "http.response.body", "body": TIMEOUT_BODY})
