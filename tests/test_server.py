# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Tests for DispatchServer wiring: router tree, middleware, lifespan."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from switchboard import DispatchServer, build_router
from switchboard.default_pages import default_error
from switchboard.middleware.errors import ErrorMiddleware
from switchboard.routers import Domain, Raw, Sequence, Static, Subdomain

CONFIG = """\
errors:
  debug: false

log:
  path: logs/server.log

sites:
  - name: ""
    base: www
    dynamic: true
  - name: api
    subdomains:
      - name: v1
        base: api/v1
  - name: docs
    base: docs
    listing: false
  - name: "*"
    base: default
"""


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))


@pytest.fixture
def server_dir(tmp_path: Path) -> Path:
    root = tmp_path / "server"
    for sub in ("www", "api/v1", "docs/guide", "default"):
        (root / sub).mkdir(parents=True)
    (root / "config.yaml").write_text(CONFIG)
    (root / "www" / "index.html").write_text("<h1>home</h1>")
    (root / "www" / "now.py!").write_text("def process(router, request):\n    return 'dynamic'\n")
    (root / "api" / "v1" / "users.json").write_text("[]")
    (root / "docs" / "guide" / "intro.txt").write_text("intro")
    (root / "default" / "index.html").write_text("fallback")
    return root


async def mock_receive() -> dict[str, Any]:
    return {"type": "http.request", "body": b""}


def make_scope(path: str, host: str) -> dict[str, Any]:
    return {
        "type": "http",
        "method": "GET",
        "path": path,
        "query_string": b"",
        "headers": [(b"host", host.encode())],
    }


async def call(server: DispatchServer, send: Any, path: str = "/", host: str = "example.com") -> None:
    await server(make_scope(path, host), mock_receive, send)


class LifespanChannel:
    def __init__(self) -> None:
        self.incoming = [{"type": "lifespan.startup"}, {"type": "lifespan.shutdown"}]
        self.sent: list[str] = []

    async def receive(self) -> dict[str, Any]:
        return self.incoming.pop(0)

    async def send(self, message: dict[str, Any]) -> None:
        self.sent.append(message["type"])


class TestConfiguredServer:
    @pytest.mark.asyncio
    async def test_apex_index(self, server_dir: Path, send) -> None:
        await call(DispatchServer(server_dir=server_dir), send, "/")
        assert send.status == 200
        assert send.body == b"<h1>home</h1>"

    @pytest.mark.asyncio
    async def test_dynamic_enabled(self, server_dir: Path, send) -> None:
        await call(DispatchServer(server_dir=server_dir), send, "/now.py!")
        assert send.body == b"dynamic"

    @pytest.mark.asyncio
    async def test_nested_subdomain(self, server_dir: Path, send) -> None:
        server = DispatchServer(server_dir=server_dir)
        await call(server, send, "/users.json", host="api.v1.example.com")
        assert send.body == b"[]"

    @pytest.mark.asyncio
    async def test_unknown_nested_label_is_404(self, server_dir: Path, send) -> None:
        server = DispatchServer(server_dir=server_dir)
        await call(server, send, "/users.json", host="api.v2.example.com")
        assert send.status == 404

    @pytest.mark.asyncio
    async def test_wildcard_site(self, server_dir: Path, send) -> None:
        await call(DispatchServer(server_dir=server_dir), send, "/", host="shop.example.com")
        assert send.body == b"fallback"

    @pytest.mark.asyncio
    async def test_listing_disabled(self, server_dir: Path, send) -> None:
        server = DispatchServer(server_dir=server_dir)
        await call(server, send, "/guide", host="docs.example.com")
        assert send.status == 404

    @pytest.mark.asyncio
    async def test_traversal(self, server_dir: Path, send) -> None:
        await call(DispatchServer(server_dir=server_dir), send, "/../config.yaml")
        assert send.status == 404

    @pytest.mark.asyncio
    async def test_errors_section_disables_traceback(self, server_dir: Path, send) -> None:
        (server_dir / "www" / "bad.py!").write_text("raise RuntimeError('secret')\n")
        await call(DispatchServer(server_dir=server_dir), send, "/bad.py!")
        assert send.status == 500
        assert send.body == b"Internal Server Error\n"

    def test_root_is_domain(self, server_dir: Path) -> None:
        server = DispatchServer(server_dir=server_dir)
        assert isinstance(server.root, Domain)
        assert isinstance(server.dispatcher, ErrorMiddleware)

    @pytest.mark.asyncio
    async def test_lifespan_opens_and_closes_log(self, server_dir: Path) -> None:
        server = DispatchServer(server_dir=server_dir)
        channel = LifespanChannel()
        await server({"type": "lifespan"}, channel.receive, channel.send)
        assert channel.sent == ["lifespan.startup.complete", "lifespan.shutdown.complete"]
        assert not server.log_sink.is_open
        text = (server_dir / "logs" / "server.log").read_text()
        assert "INFO switchboard: DispatchServer started" in text
        assert "INFO switchboard: DispatchServer shutting down" in text


class TestExplicitRoot:
    @pytest.mark.asyncio
    async def test_plain_router_root(self, tmp_path: Path, send) -> None:
        async def hello(root: Any, request: Any, next: Any) -> None:
            await request.response.send(data="hello")

        server = DispatchServer(root=Raw(hello), server_dir=tmp_path)
        await call(server, send)
        assert send.body == b"hello"

    @pytest.mark.asyncio
    async def test_plain_router_fall_through_is_404(self, tmp_path: Path, send) -> None:
        async def pass_on(root: Any, request: Any, next: Any) -> None:
            await next()

        await call(DispatchServer(root=Raw(pass_on), server_dir=tmp_path), send)
        assert send.status == 404

    @pytest.mark.asyncio
    async def test_silent_root_is_500(self, tmp_path: Path, send) -> None:
        async def silent(root: Any, request: Any, next: Any) -> None:
            pass

        await call(DispatchServer(root=Raw(silent), server_dir=tmp_path), send)
        assert send.status == 500
        assert "ProtocolViolation" in send.text

    @pytest.mark.asyncio
    async def test_escaped_exception_caught_by_middleware(self, tmp_path: Path, send) -> None:
        async def broken(root: Any, request: Any, next: Any) -> None:
            raise RuntimeError("escaped")

        await call(DispatchServer(root=Raw(broken), server_dir=tmp_path), send)
        assert send.status == 500
        assert len(send.starts) == 1

    @pytest.mark.asyncio
    async def test_websocket_closed(self, tmp_path: Path, send) -> None:
        server = DispatchServer(root=Raw(lambda *a: None), server_dir=tmp_path)
        await server({"type": "websocket", "path": "/"}, mock_receive, send)
        assert send.messages == [{"type": "websocket.close", "code": 1003}]


class TestBuildRouter:
    def test_tree_shape(self, tmp_path: Path) -> None:
        root = build_router(
            [
                {"name": "", "base": "www"},
                {"name": "API", "subdomains": [{"name": "v1", "base": "v1"}], "base": "api"},
            ],
            tmp_path,
            default_error,
        )
        assert set(root.sub) == {"", "api"}
        assert isinstance(root.sub[""], Static)
        assert root.sub[""].base == str(tmp_path / "www")
        api = root.sub["api"]
        assert isinstance(api, Sequence)
        assert isinstance(api.routers[0], Subdomain)
        assert isinstance(api.routers[1], Static)

    def test_name_keyed_mapping_form(self, tmp_path: Path) -> None:
        root = build_router(
            {"": {"base": "www"}, "api": {"subdomains": {"v1": {"base": "v1"}}}},
            tmp_path,
            default_error,
        )
        assert list(root.sub) == ["", "api"]
        assert isinstance(root.sub[""], Static)
        nested = root.sub["api"]
        assert isinstance(nested, Subdomain)
        assert nested.sub["v1"].base == str(tmp_path / "v1")

    def test_options(self, tmp_path: Path) -> None:
        root = build_router(
            [{"name": "", "base": "www", "listing": False, "all": True, "dynamic": True}],
            tmp_path,
            default_error,
        )
        static = root.sub[""]
        assert static.ls is None
        assert static.all is True
        assert len(static.handlers) == 1

    def test_duplicate_names(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError):
            build_router([{"name": "a", "base": "x"}, {"name": "a", "base": "y"}], tmp_path, default_error)

    def test_entry_needs_base_or_subdomains(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError):
            build_router([{"name": "a"}], tmp_path, default_error)
