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

"""Shared fixtures: ASGI message capture, in-memory filesystem, request factory."""

from __future__ import annotations

import posixpath
from collections.abc import AsyncIterator, Callable
from typing import Any

import pytest

from switchboard.request import HttpRequest
from switchboard.storage import DEFAULT_CHUNK_SIZE, FileStat


class MockSend:
    """Capture ASGI send messages for testing."""

    def __init__(self) -> None:
        self.messages: list[dict[str, Any]] = []

    async def __call__(self, message: dict[str, Any]) -> None:
        self.messages.append(message)

    @property
    def start_message(self) -> dict[str, Any]:
        """Get the http.response.start message."""
        return self.messages[0]

    @property
    def starts(self) -> list[dict[str, Any]]:
        return [m for m in self.messages if m["type"] == "http.response.start"]

    @property
    def body_messages(self) -> list[dict[str, Any]]:
        """Get all http.response.body messages."""
        return [m for m in self.messages if m["type"] == "http.response.body"]

    @property
    def status(self) -> int:
        return self.start_message["status"]

    @property
    def headers(self) -> dict[bytes, bytes]:
        """Get headers as dict."""
        return dict(self.start_message["headers"])

    @property
    def body(self) -> bytes:
        """Get complete body (concatenated from all body messages)."""
        return b"".join(m.get("body", b"") for m in self.body_messages)

    @property
    def text(self) -> str:
        return self.body.decode("utf-8")


class MemoryFilesystem:
    """In-memory Filesystem recording every call.

    ``files`` maps absolute paths to bytes. Parent directories are implied;
    ``specials`` are paths that exist but are neither file nor directory.
    Directory listings follow insertion order.
    """

    def __init__(
        self,
        files: dict[str, bytes] | None = None,
        dirs: list[str] | tuple[str, ...] = (),
        specials: list[str] | tuple[str, ...] = (),
        denied: list[str] | tuple[str, ...] = (),
    ) -> None:
        self.files: dict[str, bytes] = dict(files or {})
        self.dirs: dict[str, list[str]] = {"/": []}
        self.specials = set(specials)
        self.denied = set(denied)
        self.stat_calls: list[str] = []
        self.listdir_calls: list[str] = []
        self.opened: list[str] = []
        for path in [*self.files, *self.specials]:
            self._register(path)
        for path in dirs:
            self._register(path)
            self.dirs.setdefault(path, [])

    def _register(self, path: str) -> None:
        parent, name = posixpath.split(path)
        while True:
            entries = self.dirs.setdefault(parent, [])
            if name not in entries:
                entries.append(name)
            if parent == "/":
                break
            parent, name = posixpath.split(parent)

    async def stat(self, path: str) -> FileStat:
        self.stat_calls.append(path)
        if path in self.files:
            return FileStat(is_dir=False, is_file=True, size=len(self.files[path]))
        if path in self.dirs:
            return FileStat(is_dir=True, is_file=False)
        if path in self.specials:
            return FileStat(is_dir=False, is_file=False)
        raise FileNotFoundError(path)

    async def listdir(self, path: str) -> list[str]:
        self.listdir_calls.append(path)
        if path in self.denied:
            raise PermissionError(path)
        if path not in self.dirs:
            raise FileNotFoundError(path)
        return list(self.dirs[path])

    async def iter_bytes(
        self, path: str, chunk_size: int = DEFAULT_CHUNK_SIZE
    ) -> AsyncIterator[bytes]:
        self.opened.append(path)
        if path not in self.files:
            raise FileNotFoundError(path)
        data = self.files[path]
        for start in range(0, len(data), chunk_size):
            yield data[start : start + chunk_size]


async def mock_receive() -> dict[str, Any]:
    """Mock receive callable (requests carry no body here)."""
    return {"type": "http.request", "body": b""}


def make_scope(
    path: str = "/",
    host: str | None = "example.com",
    method: str = "GET",
    headers: dict[str, str] | None = None,
    query_string: bytes = b"",
) -> dict[str, Any]:
    raw: list[tuple[bytes, bytes]] = []
    if host is not None:
        raw.append((b"host", host.encode("latin-1")))
    for name, value in (headers or {}).items():
        raw.append((name.lower().encode("latin-1"), value.encode("latin-1")))
    return {
        "type": "http",
        "method": method,
        "path": path,
        "query_string": query_string,
        "headers": raw,
        "server": ("127.0.0.1", 8000),
        "client": ("10.0.0.1", 50000),
    }


@pytest.fixture
def send() -> MockSend:
    """Create a mock send callable."""
    return MockSend()


@pytest.fixture
def make_request(send: MockSend) -> Callable[..., HttpRequest]:
    """Factory for HttpRequest objects writing into the ``send`` fixture."""

    def factory(
        path: str = "/",
        host: str | None = "example.com",
        method: str = "GET",
        headers: dict[str, str] | None = None,
        query_string: bytes = b"",
        filesystem: Any = None,
        capture: MockSend | None = None,
    ) -> HttpRequest:
        scope = make_scope(path, host, method, headers, query_string)
        return HttpRequest(scope, mock_receive, capture or send, filesystem=filesystem)

    return factory


@pytest.fixture
def make_fs() -> type[MemoryFilesystem]:
    """The MemoryFilesystem class, for tests that need their own tree."""
    return MemoryFilesystem


@pytest.fixture
def make_send() -> type[MockSend]:
    return MockSend
