# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Cached - handler that builds a processor once per path and reuses it.

Flow for ``process(router, request, path)``:

1. cache hit: the stored processor answers directly, nothing is rebuilt
2. stat the path; failure answers 404 through ``router.error``
3. ``build(path)``; failure goes to ``router.error`` as is (not cached)
4. the built processor is stored, then answers the current request

``build`` may be a plain function or a coroutine function. It is called
through ``smartasync``, so a blocking build (compiling a template,
loading a module) runs in a worker thread instead of stalling the loop.

Example:
    async def render_markdown(path):
        return MarkdownPage(path)   # has async process(router, request)

    site = Static(base="./docs", ext={".md": Cached(render_markdown)})
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from smartasync import smartasync

from ..exceptions import BuildError
from ..storage import LocalFilesystem
from .base import Handler
from .cache import BuildCache

if TYPE_CHECKING:
    from ..request import HttpRequest
    from ..storage import Filesystem
    from .base import Processor

__all__ = ["Cached"]

logger = logging.getLogger("switchboard.handlers")


class Cached(Handler):
    """Handler memoizing ``build(path)`` results in a BuildCache.

    Attributes:
        build: Callable ``(path) -> Processor``, sync or async.
        cache: The BuildCache holding built processors.
        filesystem: Filesystem used for the existence check.
    """

    __slots__ = ("build", "cache", "filesystem")

    def __init__(
        self,
        build: Callable[[str], Any],
        filesystem: Filesystem | None = None,
        single_flight: bool = True,
    ) -> None:
        self.build = build
        self.cache = BuildCache(single_flight=single_flight)
        self.filesystem: Filesystem = filesystem or LocalFilesystem()

    async def process(self, router: Any, request: HttpRequest, path: str) -> None:
        built = self.cache.get(path)
        if built is None:
            try:
                await self.filesystem.stat(path)
            except (OSError, ValueError):
                await router.error(request, 404)
                return
            try:
                built = await self.cache.get_or_build(path, self._build)
            except Exception as exc:
                logger.warning(f"Build failed for {path}: {exc!r}")
                await router.error(request, exc)
                return
        await built.process(router, request)

    async def _build(self, path: str) -> Processor:
        logger.debug(f"Building {path}")
        built = await smartasync(self.build)(path)
        # callable objects with an async __call__ come back unawaited
        if inspect.isawaitable(built):
            built = await built
        if not callable(getattr(built, "process", None)):
            raise BuildError(path, f"{type(built).__name__} has no process()")
        return built

    def __repr__(self) -> str:
        return f"Cached({getattr(self.build, '__name__', self.build)!r}, {self.cache!r})"
