# Copyright 2025 Softwell S.r.l.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     https://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
HTTP request and dispatch context.

HttpRequest wraps one ASGI HTTP connection and carries the state routers
share while a request travels down the router tree:

- host / subdomain_labels: what Domain and Subdomain routers switch on
- depth: how many host labels nested routers have consumed so far
- url / path: the request target for display and the normalized
  decoded ``scope["path"]``
- resolved_path: the filesystem path chosen by the Static router
- response: the ResponseSender used to answer exactly once

Every request:
1. Is created by DispatchServer when the ASGI call starts
2. Gets an ``id`` (X-Request-ID header or a fresh uuid4)
3. Records whether a response has started, so error renderers never
   write a second one
4. Is discarded when the ASGI call returns

Example:
    request = HttpRequest(scope, receive, send)
    await root.route(root, request, terminal_next)
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from .datastructures import Headers, headers_from_scope
from .paths import normalize_path
from .response import ResponseSender
from .types import Message, Receive, Scope, Send

if TYPE_CHECKING:
    from .storage import Filesystem

__all__ = ["HttpRequest", "split_host"]


def split_host(value: str) -> str:
    """Strip the port from a Host header value and lower-case it.

    Example:
        >>> split_host("API.Example.com:8000")
        'api.example.com'
        >>> split_host("[::1]:8000")
        '[::1]'
    """
    value = value.strip().lower()
    if value.startswith("["):
        end = value.find("]")
        return value[: end + 1] if end != -1 else value
    return value.partition(":")[0].rstrip(".")


class HttpRequest:
    """HTTP request adapter wrapping an ASGI scope plus dispatch context."""

    __slots__ = (
        "_scope",
        "_receive",
        "_send",
        "_headers",
        "_id",
        "_started",
        "host",
        "url",
        "path",
        "depth",
        "resolved_path",
        "response",
    )

    def __init__(
        self,
        scope: Scope,
        receive: Receive,
        send: Send,
        filesystem: Filesystem | None = None,
    ) -> None:
        self._scope = scope
        self._receive = receive
        self._send = send
        self._headers: Headers = headers_from_scope(scope)
        self._id = self._headers.get("x-request-id") or str(uuid.uuid4())
        self._started = False

        host = self._headers.get("host")
        if host is None and scope.get("server"):
            host = str(scope["server"][0])
        self.host: str = split_host(host or "")

        path = scope.get("path", "/")
        query_string = scope.get("query_string", b"")
        self.url: str = f"{path}?{query_string.decode('latin-1')}" if query_string else path
        self.path: str = normalize_path(path)
        self.depth: int = 0
        self.resolved_path: str | None = None
        self.response = ResponseSender(self, filesystem=filesystem)

    @property
    def id(self) -> str:
        return self._id

    @property
    def method(self) -> str:
        return str(self._scope.get("method", "GET")).upper()

    @property
    def headers(self) -> Headers:
        return self._headers

    @property
    def scope(self) -> Scope:
        """Raw ASGI scope dict."""
        return self._scope

    @property
    def receive(self) -> Receive:
        return self._receive

    @property
    def subdomain_labels(self) -> list[str]:
        """Host labels in front of the registered domain.

        ``a.b.example.com`` gives ``["a", "b"]``; ``example.com``,
        ``localhost`` and IP addresses give ``[]``.
        """
        labels = [label for label in self.host.split(".") if label]
        if len(labels) <= 2 or all(label.isdigit() for label in labels):
            return []
        return labels[:-2]

    @property
    def responded(self) -> bool:
        """True once ``http.response.start`` has been sent."""
        return self._started

    async def send(self, message: Message) -> None:
        """Forward a raw ASGI message, tracking the response start."""
        if message["type"] == "http.response.start":
            self._started = True
        await self._send(message)

    def __repr__(self) -> str:
        return (
            f"HttpRequest(host={self.host!r}, path={self.path!r}, depth={self.depth})"
        )
