# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Access logging middleware.

Log format:
    Request:  "<- GET /docs/ on example.com from 192.168.1.1"
    Response: "-> GET /docs/ 200 (12.5ms)"
    Error:    "-> GET /docs/ ERROR: ... (12.5ms)"

Records go to the ``switchboard.access`` logger, a child of the logger
LogSink attaches its handler to, so they share the server log.

Config:
    logger_name (str): Default "switchboard.access".
    level (str): Default "INFO".
    include_headers (bool): Log request headers at DEBUG. Default False.
    include_query (bool): Append the query string. Default True.

Example::

    middleware:
      logging: on

    logging_middleware:
      level: DEBUG
      include_headers: true
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any

from . import BaseMiddleware
from ..datastructures import headers_from_scope

if TYPE_CHECKING:
    from ..types import ASGIApp, Message, Receive, Scope, Send


class LoggingMiddleware(BaseMiddleware):
    """Access log entry on request arrival and on response completion.

    Class Attributes:
        middleware_name: "logging"
        middleware_order: 200
        middleware_default: False
    """

    middleware_name = "logging"
    middleware_order = 200
    middleware_default = False

    __slots__ = ("logger", "level", "include_headers", "include_query")

    def __init__(
        self,
        app: ASGIApp,
        logger_name: str = "switchboard.access",
        level: str = "INFO",
        include_headers: bool = False,
        include_query: bool = True,
        **kwargs: Any,
    ) -> None:
        super().__init__(app, **kwargs)
        self.logger = logging.getLogger(logger_name)
        self.level = getattr(logging, str(level).upper(), logging.INFO)
        self.include_headers = include_headers
        self.include_query = include_query

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start_time = time.perf_counter()
        headers = headers_from_scope(scope)
        request_info = f"{scope.get('method', '?')} {scope.get('path', '/')}"
        query = scope.get("query_string", b"").decode("latin-1")
        if self.include_query and query:
            request_info += f"?{query}"

        client = scope.get("client")
        client_ip = client[0] if client else "unknown"
        host = headers.get("host", "-")
        self.logger.log(self.level, f"<- {request_info} on {host} from {client_ip}")
        if self.include_headers:
            self.logger.debug(f"   Headers: {dict(headers.items())}")

        status_code = 0

        async def send_with_logging(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message.get("status", 0)
            await send(message)

        try:
            await self.app(scope, receive, send_with_logging)
        except Exception as e:
            duration = (time.perf_counter() - start_time) * 1000
            self.logger.error(f"-> {request_info} ERROR: {e!r} ({duration:.1f}ms)")
            raise

        duration = (time.perf_counter() - start_time) * 1000
        self.logger.log(self.level, f"-> {request_info} {status_code} ({duration:.1f}ms)")
