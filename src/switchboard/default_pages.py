# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""
Default error and directory listing pages.

Used by Domain and Static routers when no custom callbacks are configured.

- ``default_error(request, signal)``: plain-text error page. Integer
  signals (and HTTPException) are expected conditions and never show a
  traceback; any other exception is an unexpected failure and is
  rendered as a 500 with its traceback.
- ``ErrorRenderer(debug=False)``: the same renderer with tracebacks
  disabled, for deployments that must not leak implementation details.
- ``default_ls(request, directory, entries)``: minimal HTML index with
  one link per directory entry.
"""

from __future__ import annotations

import html
import logging
import posixpath
import traceback
from typing import TYPE_CHECKING

from .exceptions import HTTPException

if TYPE_CHECKING:
    from .request import HttpRequest
    from .types import ErrorSignal

__all__ = ["ErrorRenderer", "default_error", "default_ls", "render_listing"]

logger = logging.getLogger("switchboard.pages")


class ErrorRenderer:
    """Callable error callback rendering plain-text error pages.

    Attributes:
        debug: Include tracebacks in 500 pages.
    """

    __slots__ = ("debug",)

    def __init__(self, debug: bool = True) -> None:
        self.debug = debug

    async def __call__(self, request: HttpRequest, signal: ErrorSignal) -> None:
        if isinstance(signal, HTTPException):
            status: int = signal.status_code
            headers = signal.headers
        elif isinstance(signal, int):
            status = signal
            headers = None
        else:
            await self._server_error(request, signal)
            return

        if request.responded:
            logger.warning(f"Status {status} for {request.url} after response started")
            return
        body = (
            f"Generated error code {status} while processing URI {request.url}"
            " (no error handler specified)\n"
        )
        await request.response.send(
            data=body, mime="text/plain; charset=utf-8", status=status, headers=headers
        )

    async def _server_error(self, request: HttpRequest, error: BaseException) -> None:
        logger.error(
            f"Error while processing {request.host}{request.url}",
            exc_info=(type(error), error, error.__traceback__),
        )
        if request.responded:
            return
        if self.debug:
            trace = "".join(
                traceback.format_exception(type(error), error, error.__traceback__)
            )
            body = (
                f"While processing URI {request.url} the following error occurred:"
                f"\n\n{trace}\n(no error handler specified)\n"
            )
        else:
            body = "Internal Server Error\n"
        await request.response.send(
            data=body, mime="text/plain; charset=utf-8", status=500
        )

    def __repr__(self) -> str:
        return f"ErrorRenderer(debug={self.debug})"


default_error = ErrorRenderer()


def render_listing(url_path: str, entries: list[str]) -> str:
    """HTML page listing ``entries`` of the directory at ``url_path``."""
    title = html.escape(url_path)
    items = "".join(
        f'<li><a href="{html.escape(posixpath.join(url_path, name), quote=True)}">'
        f"{html.escape(name)}</a></li>"
        for name in entries
    )
    return (
        "<!DOCTYPE html>"
        "<html>"
        f"<head><title>Index of {title}</title></head>"
        f"<body><h3>Index of {title}</h3><ul>{items}</ul></body>"
        "</html>"
    )


async def default_ls(request: HttpRequest, directory: str, entries: list[str]) -> None:
    """Directory listing callback used by Static when no index file exists."""
    await request.response.send(
        data=render_listing(request.path, entries), mime="text/html; charset=utf-8"
    )
