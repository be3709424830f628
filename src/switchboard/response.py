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
Response writing with content negotiation.

Every router that answers a request goes through ``ResponseSender.send()``,
which handles the parts every response shares: Content-Type, compression
negotiation and streaming the body to the ASGI server.

Main Pattern
============
Each HttpRequest owns one ResponseSender as ``request.response``::

    # Serve a file from disk
    await request.response.send(filename="/srv/www/index.html")

    # Serve an in-memory payload
    await request.response.send(data="pong", mime="text/plain")

    # Error page
    await request.response.send(data=body, mime="text/plain", status=404)

Content-Type
============
- explicit ``mime`` argument wins
- files: looked up from the file name (see ``mime.lookup``)
- in-memory data: application/octet-stream

Content-Encoding
================
Accept-Encoding is read as a token set. Preference order is fixed:
gzip, then deflate, then identity. The client's q-value ordering is not
consulted, except that ``q=0`` is an explicit refusal. ``deflate`` uses
the zlib container, which is what clients expect in practice.

Streaming
=========
Bodies are never buffered whole. Files are read chunk by chunk from the
filesystem service; compression runs as a streaming transform between
the source and the ASGI ``send``. Content-Length is only known (and only
sent) for uncompressed in-memory payloads.

One response per request
========================
A second ``send()`` on the same request raises ``ProtocolViolation``.
"""

from __future__ import annotations

import zlib
from collections.abc import AsyncIterator, Mapping
from typing import TYPE_CHECKING

from .datastructures import parse_tokens
from .exceptions import ProtocolViolation
from .mime import DEFAULT_TYPE, lookup
from .storage import DEFAULT_CHUNK_SIZE, LocalFilesystem

if TYPE_CHECKING:
    from .request import HttpRequest
    from .storage import Filesystem

__all__ = ["ResponseSender", "negotiate_encoding", "ENCODING_PREFERENCE"]

# Fixed preference order, identity is implied last
ENCODING_PREFERENCE: tuple[str, ...] = ("gzip", "deflate")

_WBITS = {
    "gzip": 16 + zlib.MAX_WBITS,
    "deflate": zlib.MAX_WBITS,
}


def negotiate_encoding(accept_encoding: str | Mapping[str, float] | None) -> str | None:
    """Pick the response encoding for an Accept-Encoding header.

    ``accept_encoding`` is the raw header value or its parsed
    ``{token: q-value}`` form (``Headers.tokens``).

    Returns ``"gzip"``, ``"deflate"`` or ``None`` (identity).

    Example:
        >>> negotiate_encoding("gzip, deflate")
        'gzip'
        >>> negotiate_encoding("deflate;q=1, gzip;q=0.1")
        'gzip'
        >>> negotiate_encoding("br") is None
        True
    """
    if isinstance(accept_encoding, Mapping):
        accepted = accept_encoding
    else:
        accepted = parse_tokens(accept_encoding)
    for encoding in ENCODING_PREFERENCE:
        if accepted.get(encoding, 0.0) > 0.0:
            return encoding
    return None


async def _iter_payload(payload: bytes, chunk_size: int) -> AsyncIterator[bytes]:
    for start in range(0, len(payload), chunk_size):
        yield payload[start : start + chunk_size]


async def _compress(
    chunks: AsyncIterator[bytes], encoding: str, level: int
) -> AsyncIterator[bytes]:
    compressor = zlib.compressobj(level, zlib.DEFLATED, _WBITS[encoding])
    async for chunk in chunks:
        compressed = compressor.compress(chunk)
        if compressed:
            yield compressed
    yield compressor.flush()


async def _prepend(first: bytes, rest: AsyncIterator[bytes]) -> AsyncIterator[bytes]:
    if first:
        yield first
    async for chunk in rest:
        yield chunk


class ResponseSender:
    """
    Writes the single response of one request.

    Attributes:
        request: The HttpRequest being answered.
        filesystem: Filesystem used to stream ``filename`` bodies.
        chunk_size: Read size for files and in-memory payloads.
        compression_level: zlib level 1-9, clamped.
    """

    __slots__ = ("request", "filesystem", "chunk_size", "compression_level")

    def __init__(
        self,
        request: HttpRequest,
        filesystem: Filesystem | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        compression_level: int = 6,
    ) -> None:
        self.request = request
        self.filesystem: Filesystem = filesystem or LocalFilesystem()
        self.chunk_size = chunk_size
        self.compression_level = min(9, max(1, compression_level))

    @property
    def sent(self) -> bool:
        return self.request.responded

    async def send(
        self,
        *,
        filename: str | None = None,
        data: bytes | str | None = None,
        mime: str | None = None,
        status: int = 200,
        headers: Mapping[str, str] | list[tuple[str, str]] | None = None,
        filesystem: Filesystem | None = None,
    ) -> None:
        """
        Send a file or an in-memory payload as the response.

        Args:
            filename: Path of a file to stream.
            data: In-memory body; ``str`` is encoded as UTF-8.
            mime: Explicit Content-Type, overrides the lookup.
            status: HTTP status code (default 200).
            headers: Extra response headers.
            filesystem: Overrides ``self.filesystem`` for this call.

        Raises:
            ValueError: Neither or both of ``filename`` and ``data`` given.
            ProtocolViolation: A response was already sent for this request.
            OSError: The file could not be opened; nothing was sent.
        """
        if (filename is None) == (data is None):
            raise ValueError("send() takes exactly one of filename or data")
        if self.request.responded:
            raise ProtocolViolation(f"response already sent for {self.request.url}")

        length: int | None = None
        source: AsyncIterator[bytes] | None = None
        body: AsyncIterator[bytes]
        if filename is not None:
            content_type = mime or lookup(filename)
            fs = filesystem or self.filesystem
            source = fs.iter_bytes(filename, self.chunk_size).__aiter__()
            # Open and read ahead so a vanished file fails before any header
            try:
                first = await source.__anext__()
            except StopAsyncIteration:
                first = b""
            body = _prepend(first, source)
        else:
            payload = data.encode("utf-8") if isinstance(data, str) else bytes(data)  # type: ignore[arg-type]
            content_type = mime or DEFAULT_TYPE
            length = len(payload)
            body = _iter_payload(payload, self.chunk_size)

        response_headers: list[tuple[str, str]] = [
            ("content-type", content_type),
            ("vary", "Accept-Encoding"),
        ]
        encoding = negotiate_encoding(self.request.headers.tokens("accept-encoding"))
        if encoding is not None:
            response_headers.append(("content-encoding", encoding))
            body = _compress(body, encoding, self.compression_level)
        elif length is not None:
            response_headers.append(("content-length", str(length)))
        if headers:
            items = headers if isinstance(headers, list) else list(headers.items())
            response_headers.extend(items)

        start = {
            "type": "http.response.start",
            "status": status,
            "headers": [
                (name.lower().encode("latin-1"), value.encode("latin-1"))
                for name, value in response_headers
            ],
        }
        try:
            await self.request.send(start)
            if self.request.method == "HEAD":
                await self.request.send({"type": "http.response.body", "body": b""})
                return
            async for chunk in body:
                if chunk:
                    await self.request.send(
                        {"type": "http.response.body", "body": chunk, "more_body": True}
                    )
            await self.request.send(
                {"type": "http.response.body", "body": b"", "more_body": False}
            )
        finally:
            aclose = getattr(source, "aclose", None)
            if aclose is not None:
                await aclose()
