# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Host-based routers: Domain (dispatch root) and Subdomain (nested).

Labels are taken from ``request.subdomain_labels``, the host labels in
front of the registered domain, consumed left to right::

    a.b.example.com  ->  ["a", "b"]
    Domain picks "a" (depth becomes 1), a nested Subdomain picks "b".

Both look the label up in their mapping, then fall back to the wildcard
entry ``"*"``. The apex domain (``example.com``) has the label ``""``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from ..default_pages import default_error
from .base import Continuation, Router

if TYPE_CHECKING:
    from ..request import HttpRequest
    from ..types import ErrorCallback, Next

__all__ = ["Domain", "Subdomain", "WILDCARD", "select"]

WILDCARD = "*"

logger = logging.getLogger("switchboard.routers")


def select(sub: Mapping[str, Router], label: str) -> Router | None:
    """Exact entry for ``label``, else the wildcard entry, else None."""
    if label in sub:
        return sub[label]
    return sub.get(WILDCARD)


class Domain(Router):
    """Dispatch root switching on the first subdomain label.

    Domain never falls through: a label with no entry (and no wildcard)
    answers 404 through ``error``. Children see the Domain as ``root`` and
    get a continuation that also ends in 404. Exceptions escaping a child
    are handed to ``error`` as unexpected failures.

    Attributes:
        sub: Mapping from label (``""`` for the apex, ``"*"`` wildcard) to router.
        error: Error callback ``(request, signal)``.
    """

    __slots__ = ("sub", "error")

    def __init__(
        self,
        sub: Mapping[str, Router],
        error: ErrorCallback | None = None,
    ) -> None:
        self.sub = dict(sub)
        self.error: ErrorCallback = error or default_error

    async def dispatch(self, request: HttpRequest) -> None:
        """Entry point for one inbound request."""
        labels = request.subdomain_labels
        label = labels[0] if labels else ""
        child = select(self.sub, label)
        if child is None:
            await self.error(request, 404)
            return

        request.depth = 1

        async def not_found() -> None:
            await self.error(request, 404)

        try:
            await child.route(self, request, Continuation(not_found))
        except Exception as exc:
            if request.responded:
                logger.error(f"{request.host}{request.url} failed after response started: {exc!r}")
                raise
            await self.error(request, exc)

    async def route(self, root: Any, request: HttpRequest, next: Next) -> None:
        # Always the root of its chain, so ``next`` is never used
        await self.dispatch(request)

    def __repr__(self) -> str:
        return f"Domain({sorted(self.sub)!r})"


class Subdomain(Router):
    """Switchboard for the label at ``request.depth``.

    Increments ``depth`` while its child runs; if the child falls through,
    ``depth`` is restored before the outer ``next`` runs. With no matching
    entry and no wildcard the request falls through unchanged.
    """

    __slots__ = ("sub",)

    def __init__(self, sub: Mapping[str, Router]) -> None:
        self.sub = dict(sub)

    async def route(self, root: Any, request: HttpRequest, next: Next) -> None:
        labels = request.subdomain_labels
        depth = request.depth
        label = labels[depth] if depth < len(labels) else ""
        child = select(self.sub, label)
        if child is None:
            await next()
            return

        request.depth = depth + 1

        async def fall_through() -> None:
            request.depth = depth
            await next()

        logger.debug(f"{request.host}: label {label!r} at depth {depth}")
        await child.route(root, request, Continuation(fall_through))

    def __repr__(self) -> str:
        return f"Subdomain({sorted(self.sub)!r})"
