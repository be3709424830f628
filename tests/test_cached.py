# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Tests for the Cached handler."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from switchboard.exceptions import BuildError
from switchboard.handlers import Cached
from switchboard.routers import Continuation, Static


class ErrorLog:
    def __init__(self) -> None:
        self.signals: list[Any] = []

    async def __call__(self, request: Any, signal: Any) -> None:
        self.signals.append(signal)
        status = signal if isinstance(signal, int) else 500
        await request.response.send(data=f"error {status}", status=status)


class FakeRouter:
    def __init__(self) -> None:
        self.error = ErrorLog()


class Page:
    """Processor answering with the path it was built for."""

    def __init__(self, path: str) -> None:
        self.path = path
        self.served = 0

    async def process(self, router: Any, request: Any) -> None:
        self.served += 1
        await request.response.send(data=f"page {self.path}")


def make_page(path: str) -> Page:
    return Page(path)


class Builder:
    def __init__(self, fail: Exception | None = None) -> None:
        self.calls: list[str] = []
        self.fail = fail

    async def __call__(self, path: str) -> Page:
        self.calls.append(path)
        await asyncio.sleep(0)
        if self.fail is not None:
            raise self.fail
        return Page(path)


@pytest.fixture
def fs(make_fs):
    return make_fs({"/site/a.md": b"# a", "/site/b.md": b"# b"})


class TestCached:
    @pytest.mark.asyncio
    async def test_builds_once_and_reuses(self, fs, make_request) -> None:
        builder = Builder()
        handler = Cached(builder, filesystem=fs)
        router = FakeRouter()

        for _ in range(3):
            await handler.process(router, make_request(path="/a.md"), "/site/a.md")

        assert builder.calls == ["/site/a.md"]
        assert handler.cache.get("/site/a.md").served == 3

    @pytest.mark.asyncio
    async def test_answers_with_built_processor(self, fs, make_request, send) -> None:
        handler = Cached(Builder(), filesystem=fs)
        await handler.process(FakeRouter(), make_request(), "/site/b.md")
        assert send.body == b"page /site/b.md"

    @pytest.mark.asyncio
    async def test_hit_skips_stat(self, fs, make_request) -> None:
        handler = Cached(Builder(), filesystem=fs)
        await handler.process(FakeRouter(), make_request(), "/site/a.md")
        fs.stat_calls.clear()
        await handler.process(FakeRouter(), make_request(), "/site/a.md")
        assert fs.stat_calls == []

    @pytest.mark.asyncio
    async def test_missing_path_is_404(self, fs, make_request, send) -> None:
        builder = Builder()
        router = FakeRouter()
        await Cached(builder, filesystem=fs).process(router, make_request(), "/site/nope.md")
        assert router.error.signals == [404]
        assert builder.calls == []
        assert send.status == 404

    @pytest.mark.asyncio
    async def test_build_failure_reported_and_retried(self, fs, make_request) -> None:
        builder = Builder(fail=RuntimeError("template error"))
        handler = Cached(builder, filesystem=fs)
        router = FakeRouter()

        await handler.process(router, make_request(), "/site/a.md")
        assert isinstance(router.error.signals[0], RuntimeError)
        assert "/site/a.md" not in handler.cache

        builder.fail = None
        await handler.process(router, make_request(), "/site/a.md")
        assert builder.calls == ["/site/a.md", "/site/a.md"]
        assert "/site/a.md" in handler.cache

    @pytest.mark.asyncio
    async def test_result_without_process_is_build_error(self, fs, make_request) -> None:
        router = FakeRouter()
        handler = Cached(lambda path: "not a processor", filesystem=fs)
        await handler.process(router, make_request(), "/site/a.md")
        assert isinstance(router.error.signals[0], BuildError)
        assert router.error.signals[0].path == "/site/a.md"

    @pytest.mark.asyncio
    async def test_sync_build_function(self, fs, make_request, send) -> None:
        handler = Cached(make_page, filesystem=fs)
        await handler.process(FakeRouter(), make_request(), "/site/a.md")
        assert send.body == b"page /site/a.md"

    @pytest.mark.asyncio
    async def test_async_callable_object_build(self, fs, make_request, send) -> None:
        builder = Builder()
        router = FakeRouter()
        await Cached(builder, filesystem=fs).process(router, make_request(), "/site/b.md")
        assert router.error.signals == []
        assert builder.calls == ["/site/b.md"]
        assert send.body == b"page /site/b.md"

    @pytest.mark.asyncio
    async def test_concurrent_first_requests_build_once(self, fs, make_request) -> None:
        builder = Builder()
        handler = Cached(builder, filesystem=fs)
        await asyncio.gather(
            *(handler.process(FakeRouter(), make_request(), "/site/a.md") for _ in range(4))
        )
        assert builder.calls == ["/site/a.md"]

    @pytest.mark.asyncio
    async def test_as_static_extension_handler(self, fs, make_request, send) -> None:
        static = Static(base="/site", filesystem=fs, ext={".md": Cached(Builder(), filesystem=fs)})
        await static.route(None, make_request(path="/a.md"), Continuation(_noop))
        assert send.body == b"page /site/a.md"


async def _noop() -> None:
    pass
