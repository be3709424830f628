# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Tests for Domain and Subdomain routers."""

from __future__ import annotations

from typing import Any

import pytest

from switchboard.routers import Domain, Raw, Sequence, Subdomain


def answer(text: str):
    async def handle(root: Any, request: Any, next: Any) -> None:
        await request.response.send(data=text, mime="text/plain")

    return handle


async def pass_on(root: Any, request: Any, next: Any) -> None:
    await next()


class ErrorLog:
    """Error callback recording signals and answering with their status."""

    def __init__(self) -> None:
        self.signals: list[Any] = []

    async def __call__(self, request: Any, signal: Any) -> None:
        self.signals.append(signal)
        status = signal if isinstance(signal, int) else 500
        await request.response.send(data=f"error {status}", status=status)


class TestDomain:
    @pytest.mark.asyncio
    async def test_apex(self, make_request, send) -> None:
        root = Domain({"": Raw(answer("apex")), "www": Raw(answer("www"))})
        await root.dispatch(make_request(host="example.com"))
        assert send.body == b"apex"

    @pytest.mark.asyncio
    async def test_label(self, make_request, send) -> None:
        root = Domain({"": Raw(answer("apex")), "www": Raw(answer("www"))})
        await root.dispatch(make_request(host="www.example.com"))
        assert send.body == b"www"

    @pytest.mark.asyncio
    async def test_exact_label_beats_wildcard(self, make_request, send) -> None:
        root = Domain({"api": Raw(answer("api")), "*": Raw(answer("any"))})
        await root.dispatch(make_request(host="api.example.com"))
        assert send.body == b"api"

    @pytest.mark.asyncio
    async def test_wildcard(self, make_request, send) -> None:
        root = Domain({"api": Raw(answer("api")), "*": Raw(answer("any"))})
        await root.dispatch(make_request(host="blog.example.com"))
        assert send.body == b"any"

    @pytest.mark.asyncio
    async def test_wildcard_covers_apex(self, make_request, send) -> None:
        root = Domain({"*": Raw(answer("any"))})
        await root.dispatch(make_request(host="example.com"))
        assert send.body == b"any"

    @pytest.mark.asyncio
    async def test_unknown_label_is_404(self, make_request, send) -> None:
        root = Domain({"www": Raw(answer("www"))})
        await root.dispatch(make_request(path="/x", host="blog.example.com"))
        assert send.status == 404
        assert send.text == (
            "Generated error code 404 while processing URI /x (no error handler specified)\n"
        )

    @pytest.mark.asyncio
    async def test_fall_through_is_404(self, make_request, send) -> None:
        errors = ErrorLog()
        root = Domain({"": Raw(pass_on)}, error=errors)
        await root.dispatch(make_request())
        assert errors.signals == [404]
        assert send.status == 404

    @pytest.mark.asyncio
    async def test_child_sees_domain_as_root(self, make_request) -> None:
        seen: list[Any] = []

        async def record(root: Any, request: Any, next: Any) -> None:
            seen.append((root, request.depth))
            await request.response.send(data="ok")

        root = Domain({"": Raw(record)})
        await root.dispatch(make_request())
        assert seen == [(root, 1)]

    @pytest.mark.asyncio
    async def test_exception_goes_to_error(self, make_request, send) -> None:
        async def boom(root: Any, request: Any, next: Any) -> None:
            raise RuntimeError("boom")

        errors = ErrorLog()
        root = Domain({"": Raw(boom)}, error=errors)
        await root.dispatch(make_request())
        assert isinstance(errors.signals[0], RuntimeError)
        assert send.status == 500

    @pytest.mark.asyncio
    async def test_default_error_renders_traceback(self, make_request, send) -> None:
        async def boom(root: Any, request: Any, next: Any) -> None:
            raise RuntimeError("kaboom")

        await Domain({"": Raw(boom)}).dispatch(make_request(path="/p"))
        assert send.status == 500
        assert "RuntimeError: kaboom" in send.text
        assert "/p" in send.text

    @pytest.mark.asyncio
    async def test_exception_after_response_propagates(self, make_request, send) -> None:
        async def half(root: Any, request: Any, next: Any) -> None:
            await request.response.send(data="partial")
            raise RuntimeError("late")

        errors = ErrorLog()
        root = Domain({"": Raw(half)}, error=errors)
        with pytest.raises(RuntimeError):
            await root.dispatch(make_request())
        assert errors.signals == []
        assert len(send.starts) == 1


class TestSubdomain:
    @pytest.mark.asyncio
    async def test_nested_label(self, make_request, send) -> None:
        depths: list[int] = []

        async def record(root: Any, request: Any, next: Any) -> None:
            depths.append(request.depth)
            await request.response.send(data="v1")

        root = Domain({"api": Subdomain({"v1": Raw(record)})})
        await root.dispatch(make_request(host="api.v1.example.com"))
        assert send.body == b"v1"
        assert depths == [2]

    @pytest.mark.asyncio
    async def test_missing_label_selects_empty_entry(self, make_request, send) -> None:
        root = Domain({"api": Subdomain({"": Raw(answer("api root"))})})
        await root.dispatch(make_request(host="api.example.com"))
        assert send.body == b"api root"

    @pytest.mark.asyncio
    async def test_wildcard(self, make_request, send) -> None:
        root = Domain({"api": Subdomain({"*": Raw(answer("any version"))})})
        await root.dispatch(make_request(host="api.v9.example.com"))
        assert send.body == b"any version"

    @pytest.mark.asyncio
    async def test_no_entry_falls_through_unchanged(self, make_request, send) -> None:
        depths: list[int] = []

        async def after(root: Any, request: Any, next: Any) -> None:
            depths.append(request.depth)
            await request.response.send(data="after")

        root = Domain({"api": Sequence(Subdomain({"v1": Raw(answer("v1"))}), Raw(after))})
        await root.dispatch(make_request(host="api.v2.example.com"))
        assert send.body == b"after"
        assert depths == [1]

    @pytest.mark.asyncio
    async def test_depth_restored_on_fall_through(self, make_request, send) -> None:
        depths: list[int] = []

        async def inner(root: Any, request: Any, next: Any) -> None:
            depths.append(request.depth)
            await next()

        async def after(root: Any, request: Any, next: Any) -> None:
            depths.append(request.depth)
            await request.response.send(data="after")

        root = Domain({"api": Sequence(Subdomain({"v1": Raw(inner)}), Raw(after))})
        await root.dispatch(make_request(host="api.v1.example.com"))
        assert depths == [2, 1]
        assert send.body == b"after"

    @pytest.mark.asyncio
    async def test_fall_through_to_domain_is_404(self, make_request, send) -> None:
        root = Domain({"api": Subdomain({"v1": Raw(answer("v1"))})})
        await root.dispatch(make_request(host="api.v2.example.com"))
        assert send.status == 404
