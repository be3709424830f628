# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Dynamic - pre-filter for resources whose name ends with ``!``.

A file such as ``status.py!`` is Python source evaluated on the server
instead of being sent as bytes. The marker is part of the file name, so
opting a resource into dynamic handling is a naming decision.

Installed as a Static pre-filter::

    Static(base="./site", handlers=[Dynamic()])

``route`` intercepts when ``request.resolved_path`` ends with the marker
and lets everything else fall through. Building goes through an inner
``Cached``: every cache miss evaluates the source afresh with
``dynamic_require``, and the evaluated module then serves every later
request for that path.

A dynamic module defines ``process(router, request)``, sync or async.
It either answers through ``request.response`` itself or returns a
``str``/``bytes`` body, sent with the module's ``MIME`` (default
``text/html``)::

    MIME = "application/json"

    async def process(router, request):
        return '{"status": "ok"}'
"""

from __future__ import annotations

import inspect
import runpy
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from ..exceptions import BuildError
from ..routers.base import Router
from .base import Handler
from .cached import Cached

if TYPE_CHECKING:
    from ..request import HttpRequest
    from ..storage import Filesystem
    from ..types import Next

__all__ = ["Dynamic", "DynamicModule", "dynamic_require", "MARKER"]

MARKER = "!"


class DynamicModule:
    """Namespace of an evaluated dynamic source file."""

    __slots__ = ("path", "namespace")

    def __init__(self, path: str, namespace: dict[str, Any]) -> None:
        self.path = path
        self.namespace = namespace

    async def process(self, router: Any, request: HttpRequest) -> None:
        result = self.namespace["process"](router, request)
        if inspect.isawaitable(result):
            result = await result
        if result is None or request.responded:
            return
        await request.response.send(
            data=result, mime=self.namespace.get("MIME", "text/html; charset=utf-8")
        )

    def __repr__(self) -> str:
        return f"DynamicModule({self.path!r})"


def dynamic_require(path: str) -> DynamicModule:
    """Evaluate the Python source at ``path`` in a fresh namespace.

    Nothing is registered in ``sys.modules``, so each call re-runs the
    file. Raises ``BuildError`` when the file defines no ``process``;
    errors raised by the source itself propagate unchanged.
    """
    namespace = runpy.run_path(path, run_name="switchboard.dynamic")
    if not callable(namespace.get("process")):
        raise BuildError(path, "dynamic module defines no process()")
    return DynamicModule(path, namespace)


class Dynamic(Router, Handler):
    """Pre-filter handing marker-suffixed paths to a Cached builder.

    Attributes:
        cache: Inner Cached handler (its ``cache`` is the BuildCache).
        marker: Suffix opting a path into dynamic handling.
    """

    __slots__ = ("cache", "marker")

    def __init__(
        self,
        build: Callable[[str], Any] = dynamic_require,
        marker: str = MARKER,
        filesystem: Filesystem | None = None,
        single_flight: bool = True,
    ) -> None:
        self.cache = Cached(build, filesystem=filesystem, single_flight=single_flight)
        self.marker = marker

    async def route(self, router: Any, request: HttpRequest, next: Next) -> None:
        path = request.resolved_path
        if path is not None and path.endswith(self.marker):
            await self.cache.process(router, request, path)
        else:
            await next()

    async def process(self, router: Any, request: HttpRequest, path: str) -> None:
        await self.cache.process(router, request, path)

    def __repr__(self) -> str:
        return f"Dynamic(marker={self.marker!r})"
