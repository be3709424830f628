# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Static - filesystem-backed router.

Resolution, once per request:

1. ``resolved = join_base(base, request.path)``; stored in
   ``request.resolved_path``.
2. Pre-filter ``handlers`` run as a chain with this router as ``root``
   (e.g. Dynamic intercepting ``!`` paths). If they all fall through:
3. Unless ``all`` is set, a request path with a hidden component
   (segment starting with ``.``) is rejected with 403 before any stat.
4. Stat; failure is 404.
5. Directory: the first entry matching ``index_pattern`` (in listing
   order, which the filesystem decides) is streamed; otherwise ``ls``
   renders the entries. With no ``ls`` the answer is 404.
6. Regular file: ``ext[extension]``, else ``ext["*"]``, processes it;
   otherwise the file is streamed as is.
7. Anything else (sockets, devices) is 404.

Static never falls through to the outer ``next``. Exceptions raised by
pre-filters, ext handlers or ``ls`` are passed to ``error``.

Usage:
    site = Static(
        base="./public",
        handlers=[Dynamic()],
        ext={".md": markdown_handler},
    )
"""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Awaitable, Callable, Iterable, Mapping
from typing import TYPE_CHECKING, Any

from ..default_pages import default_error, default_ls
from ..paths import extension, has_hidden_component, join_base
from ..storage import LocalFilesystem
from .base import Continuation, Router, chain

if TYPE_CHECKING:
    from ..handlers import Handler
    from ..request import HttpRequest
    from ..storage import Filesystem
    from ..types import ErrorCallback, Next

__all__ = ["Static", "INDEX_PATTERN", "ListingCallback"]

INDEX_PATTERN = r"^index\..+$"

ListingCallback = Callable[["HttpRequest", str, "list[str]"], Awaitable[None]]

logger = logging.getLogger("switchboard.routers")


class Static(Router):
    """Router serving a directory tree.

    Attributes:
        base: Absolute directory served.
        handlers: Pre-filter routers run before generic resolution.
        ext: Mapping from extension (``".md"``) or ``"*"`` to Handler.
        ls: Directory listing callback, ``None`` to disable listings.
        error: Error callback ``(request, signal)``.
        all: Serve hidden path components too.
        filesystem: Filesystem service for stat/listdir/read.
        index_pattern: Compiled regex selecting index files.
    """

    __slots__ = (
        "base",
        "handlers",
        "ext",
        "ls",
        "error",
        "all",
        "filesystem",
        "index_pattern",
    )

    def __init__(
        self,
        base: str | os.PathLike[str] | None = None,
        handlers: Iterable[Router] = (),
        ext: Mapping[str, Handler] | None = None,
        ls: ListingCallback | None = default_ls,
        error: ErrorCallback | None = None,
        all: bool = False,
        filesystem: Filesystem | None = None,
        index_pattern: str | re.Pattern[str] = INDEX_PATTERN,
    ) -> None:
        self.base = os.path.abspath(os.fspath(base) if base is not None else os.getcwd())
        self.handlers: tuple[Router, ...] = tuple(handlers)
        self.ext: dict[str, Handler] = dict(ext or {})
        self.ls = ls
        self.error: ErrorCallback = error or default_error
        self.all = all
        self.filesystem: Filesystem = filesystem or LocalFilesystem()
        self.index_pattern = re.compile(index_pattern)

    async def route(self, root: Any, request: HttpRequest, next: Next) -> None:
        resolved = join_base(self.base, request.path)
        request.resolved_path = resolved
        try:
            await chain(
                self.handlers,
                self,
                request,
                Continuation(lambda: self._resolve(request, resolved)),
            )
        except Exception as exc:
            if request.responded:
                raise
            await self.error(request, exc)

    async def _resolve(self, request: HttpRequest, resolved: str) -> None:
        if not self.all and has_hidden_component(request.path):
            await self.error(request, 403)
            return

        try:
            info = await self.filesystem.stat(resolved)
        except (OSError, ValueError):
            await self.error(request, 404)
            return

        if info.is_dir:
            await self._serve_directory(request, resolved)
        elif info.is_file:
            await self._serve_file(request, resolved)
        else:
            await self.error(request, 404)

    async def _serve_directory(self, request: HttpRequest, directory: str) -> None:
        try:
            entries = await self.filesystem.listdir(directory)
        except OSError as exc:
            logger.warning(f"{request.host} listing of {directory} failed: {exc}")
            await self.error(request, 403 if isinstance(exc, PermissionError) else 404)
            return

        for name in entries:
            if self.index_pattern.match(name):
                await request.response.send(
                    filename=os.path.join(directory, name), filesystem=self.filesystem
                )
                return

        if self.ls is None:
            await self.error(request, 404)
            return
        await self.ls(request, directory, list(entries))

    async def _serve_file(self, request: HttpRequest, path: str) -> None:
        suffix = extension(path)
        if suffix in self.ext:
            await self.ext[suffix].process(self, request, path)
        elif "*" in self.ext:
            await self.ext["*"].process(self, request, path)
        else:
            await request.response.send(filename=path, filesystem=self.filesystem)

    def __repr__(self) -> str:
        return f"Static(base={self.base!r}, all={self.all})"
