# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Router protocol and the simple router variants.

A router receives ``(root, request, next)`` and must do exactly one of:

- answer the request (``request.response.send(...)``)
- pass control on with ``await next()``
- report an error through the active error callback

``root`` is the router that started the current chain (a Domain for the
top-level chain, a Static router for its own pre-filters). ``next`` is a
``Continuation``: calling it twice raises ``ProtocolViolation``.

Variants defined here:
    Raw: wraps a route function
    Simple: predicate on the request path plus a handler function
    Sequence: runs several routers as one chain

Example:
    ping = Simple("/ping", pong)
    api = Sequence(ping, Simple(re.compile(r"^/v1/"), v1_handler))
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Iterable
from typing import TYPE_CHECKING, Any

from ..exceptions import ProtocolViolation

if TYPE_CHECKING:
    from ..request import HttpRequest
    from ..types import Next

__all__ = [
    "Router",
    "Raw",
    "Simple",
    "Sequence",
    "Continuation",
    "chain",
    "RouteFunction",
    "Predicate",
]

RouteFunction = Callable[[Any, "HttpRequest", "Next"], Awaitable[None]]
Predicate = Callable[[Any, "HttpRequest"], bool]


class Continuation:
    """Single-use wrapper around the next step of a chain."""

    __slots__ = ("_target", "_called")

    def __init__(self, target: Callable[[], Awaitable[None]]) -> None:
        self._target = target
        self._called = False

    @property
    def called(self) -> bool:
        return self._called

    async def __call__(self) -> None:
        if self._called:
            raise ProtocolViolation("continuation invoked more than once")
        self._called = True
        await self._target()


class Router(ABC):
    """Base class of every router variant."""

    __slots__ = ()

    @abstractmethod
    async def route(self, root: Any, request: HttpRequest, next: Next) -> None: ...


async def chain(
    routers: Iterable[Router], root: Any, request: HttpRequest, next: Next
) -> None:
    """Run ``routers`` in order; each one's ``next`` is the following router.

    When the last router falls through, the outer ``next`` is awaited.
    """
    steps = tuple(routers)

    async def step(index: int) -> None:
        if index >= len(steps):
            await next()
            return
        await steps[index].route(root, request, Continuation(lambda: step(index + 1)))

    await step(0)


class Raw(Router):
    """Router whose route is an arbitrary coroutine function."""

    __slots__ = ("fn",)

    def __init__(self, fn: RouteFunction) -> None:
        self.fn = fn

    async def route(self, root: Any, request: HttpRequest, next: Next) -> None:
        await self.fn(root, request, next)

    def __repr__(self) -> str:
        return f"Raw({getattr(self.fn, '__name__', self.fn)!r})"


class Simple(Router):
    """Router answering when a predicate on the request matches.

    ``uri`` may be:
        - ``str``: exact match on ``request.path``
        - compiled regex: ``search`` against ``request.path``
        - callable ``(root, request) -> bool``

    ``handle`` is called as ``await handle(root, request, next)``.
    """

    __slots__ = ("uri", "handle", "_match")

    def __init__(self, uri: str | re.Pattern[str] | Predicate, handle: RouteFunction) -> None:
        self.uri = uri
        self.handle = handle
        self._match: Predicate = self._make_predicate(uri)

    @staticmethod
    def _make_predicate(uri: Any) -> Predicate:
        if isinstance(uri, str):
            return lambda root, request: request.path == uri
        if isinstance(uri, re.Pattern):
            return lambda root, request: uri.search(request.path) is not None
        if callable(uri):
            return uri
        raise TypeError(f"Simple router needs a str, regex or callable, got {type(uri).__name__}")

    def matches(self, root: Any, request: HttpRequest) -> bool:
        return bool(self._match(root, request))

    async def route(self, root: Any, request: HttpRequest, next: Next) -> None:
        if self.matches(root, request):
            await self.handle(root, request, next)
        else:
            await next()

    def __repr__(self) -> str:
        return f"Simple({self.uri!r})"


class Sequence(Router):
    """Router running its children as a sub-chain.

    Falls through to the outer ``next`` when every child falls through.
    """

    __slots__ = ("routers",)

    def __init__(self, *routers: Router) -> None:
        self.routers: tuple[Router, ...] = routers

    async def route(self, root: Any, request: HttpRequest, next: Next) -> None:
        await chain(self.routers, root, request, next)

    def __repr__(self) -> str:
        return f"Sequence({', '.join(repr(r) for r in self.routers)})"
