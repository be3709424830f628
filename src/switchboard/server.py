# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Dispatch server - ASGI entry point in front of a router tree.

DispatchServer is the central coordinator that:
- Loads configuration from YAML files (config.yaml)
- Builds the root Domain router from the ``sites`` section
- Wraps dispatch in the middleware chain (errors, logging, timeout)
- Handles ASGI lifespan (opening and closing the LogSink)

Usage:
    from switchboard import DispatchServer

    server = DispatchServer(server_dir=".")
    server.run()  # Starts uvicorn

A router tree built in code replaces the ``sites`` section::

    root = Domain({"": Static(base="./www"), "*": Static(base="./default")})
    server = DispatchServer(root=root)

Request flow:
    ASGI Server (uvicorn) -> DispatchServer.__call__
        -> Middleware chain (errors -> logging -> timeout)
        -> DispatchServer.dispatch -> HttpRequest -> root.dispatch(request)
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from .default_pages import ErrorRenderer, default_ls
from .exceptions import ProtocolViolation
from .handlers import Dynamic
from .lifespan import ServerLifespan
from .log import LogSink
from .middleware import middleware_chain
from .request import HttpRequest
from .routers import INDEX_PATTERN, Continuation, Domain, Router, Sequence, Static, Subdomain
from .server_config import ServerConfig, site_entries
from .storage import Filesystem, LocalFilesystem
from .types import ErrorCallback, Receive, Scope, Send

__all__ = ["DispatchServer", "build_router"]

logger = logging.getLogger("switchboard.server")


def _site_router(
    entry: Mapping[str, Any],
    base_dir: Path,
    error: ErrorCallback,
    filesystem: Filesystem | None,
) -> Router:
    """Router for one ``sites`` entry: a Static tree, a Subdomain switch, or both.

    With both, the Subdomain switch runs first and falls through to the
    Static tree when no nested label matches.
    """
    name = entry.get("name", "")
    routers: list[Router] = []
    if entry.get("subdomains"):
        routers.append(Subdomain(_site_table(entry["subdomains"], base_dir, error, filesystem)))
    if entry.get("base") is not None:
        handlers = [Dynamic(filesystem=filesystem)] if entry.get("dynamic") else []
        routers.append(
            Static(
                base=base_dir / str(entry["base"]),
                handlers=handlers,
                ls=default_ls if entry.get("listing", True) else None,
                error=error,
                all=bool(entry.get("all", False)),
                filesystem=filesystem,
                index_pattern=entry.get("index", INDEX_PATTERN),
            )
        )
    if not routers:
        raise ValueError(f"Site {name!r} needs a 'base' or 'subdomains'")
    return routers[0] if len(routers) == 1 else Sequence(*routers)


def _site_table(
    entries: Any,
    base_dir: Path,
    error: ErrorCallback,
    filesystem: Filesystem | None,
) -> dict[str, Router]:
    table: dict[str, Router] = {}
    for entry in site_entries(entries):
        name = str(entry.get("name") or "").lower()
        if name in table:
            raise ValueError(f"Duplicate site name {name!r}")
        table[name] = _site_router(entry, base_dir, error, filesystem)
    return table


def build_router(
    sites: Iterable[Mapping[str, Any]] | Mapping[str, Any],
    base_dir: str | Path,
    error: ErrorCallback,
    filesystem: Filesystem | None = None,
) -> Domain:
    """Build the root Domain from ``sites`` config entries.

    Relative ``base`` paths are resolved against ``base_dir``. Entry keys:
    ``name`` (label, ``""`` apex, ``"*"`` wildcard), ``base``, ``listing``,
    ``all``, ``dynamic``, ``index`` and ``subdomains`` (nested entries).
    Entries may also be given as a mapping keyed by name.
    """
    return Domain(_site_table(sites, Path(base_dir), error, filesystem), error=error)


class DispatchServer:
    """
    ASGI application dispatching every request through a router tree.

    Attributes:
        config: ServerConfig for configuration.
        base_dir: Resolved server directory.
        error: Default error renderer (``errors`` config section).
        root: Root router, a Domain unless given explicitly.
        filesystem: Filesystem shared by requests and Static routers.
        log_sink: LogSink opened at lifespan startup.
        lifespan: ServerLifespan for startup/shutdown.
        dispatcher: Middleware chain wrapping ``dispatch``.
    """

    __slots__ = (
        "config",
        "base_dir",
        "error",
        "root",
        "filesystem",
        "log_sink",
        "lifespan",
        "dispatcher",
    )

    def __init__(
        self,
        root: Router | None = None,
        server_dir: str | Path | None = None,
        host: str | None = None,
        port: int | None = None,
        reload: bool | None = None,
        argv: list[str] | None = None,
        filesystem: Filesystem | None = None,
    ) -> None:
        self.config = ServerConfig(server_dir, host, port, reload, argv)
        self.base_dir: Path = self.config.server_dir
        self.error = ErrorRenderer(**self.config.errors)
        self.filesystem: Filesystem = filesystem or LocalFilesystem()
        if root is None:
            root = build_router(self.config.sites, self.base_dir, self.error, self.filesystem)
        self.root: Router = root
        self.log_sink = LogSink(**self.config.log)
        self.lifespan = ServerLifespan(self)
        self.dispatcher = middleware_chain(
            self.config.middleware, self.dispatch, full_config=self.config.options
        )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "lifespan":
            await self.lifespan(scope, receive, send)
        else:
            await self.dispatcher(scope, receive, send)

    async def dispatch(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Run one HTTP request through the root router."""
        if scope["type"] == "websocket":
            await send({"type": "websocket.close", "code": 1003})
            return
        if scope["type"] != "http":
            raise ValueError(f"Unsupported scope type {scope['type']!r}")

        request = HttpRequest(scope, receive, send, filesystem=self.filesystem)
        error: ErrorCallback = getattr(self.root, "error", None) or self.error
        if isinstance(self.root, Domain):
            await self.root.dispatch(request)
        else:
            await self.root.route(
                self.root, request, Continuation(lambda: error(request, 404))
            )
        if not request.responded:
            await error(
                request, ProtocolViolation(f"no response written for {request.host}{request.url}")
            )

    def run(self) -> None:
        """Run the server using Uvicorn."""
        import uvicorn

        host = self.config.server["host"]
        port = int(self.config.server["port"])
        reload = self.config.server["reload"] or False

        logger.info(f"Starting server on {host}:{port}")
        if reload:
            # Uvicorn requires an import string for reload mode, the factory
            # picks server_dir up from the environment
            os.environ["SWITCHBOARD_SERVER_DIR"] = str(self.base_dir)
            uvicorn.run(
                "switchboard.server:DispatchServer",
                host=host,
                port=port,
                reload=True,
                reload_dirs=[str(self.base_dir)],
                factory=True,
            )
        else:
            uvicorn.run(self, host=host, port=port)

    def __repr__(self) -> str:
        return f"DispatchServer(root={self.root!r}, base_dir={str(self.base_dir)!r})"
