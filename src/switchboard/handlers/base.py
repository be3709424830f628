# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Handler interface.

Handlers take over a request for a file the Static router has already
resolved (and found to exist). They are selected by extension through
``Static.ext`` or installed as pre-filters.

``Processor`` is the shape of what Cached handlers build and memoize: any
object with ``async process(router, request)``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ..request import HttpRequest

__all__ = ["Handler", "Processor"]


@runtime_checkable
class Processor(Protocol):
    """A built object able to answer requests on its own."""

    async def process(self, router: Any, request: HttpRequest) -> None: ...


class Handler(ABC):
    """Base class of the handler variants (Cached, Dynamic)."""

    __slots__ = ()

    @abstractmethod
    async def process(self, router: Any, request: HttpRequest, path: str) -> None:
        """Answer ``request`` for the resolved filesystem ``path``.

        ``router`` provides the ``error`` callback to report failures.
        """
