# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""BuildCache - memoization of built processors keyed by resolved path.

Policy
======
- Unbounded and immortal: once a build for a path succeeds, its result is
  reused for every later request of that exact path until the process
  ends (or an operator calls ``clear()``). There is no eviction or TTL.
- Failures are never stored; the next request retries the build.
- Single flight (default): at most one build per path is in flight. Other
  requests for the same path wait on the same future and receive the same
  result, or the same exception. The build runs as its own task, so a
  waiter being cancelled does not cancel the build for the others.
- ``single_flight=False`` keeps the unsynchronized behaviour: concurrent
  misses build independently and the last one to finish is stored.

Reads never take a lock: within one event loop the dict lookups cannot
interleave with writes.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .base import Processor

__all__ = ["BuildCache", "BuildFunction"]

BuildFunction = Callable[[str], Awaitable["Processor"]]

logger = logging.getLogger("switchboard.handlers")


def _retrieve_exception(future: asyncio.Future[Processor]) -> None:
    # Failures nobody waited for would otherwise warn at garbage collection
    if not future.cancelled():
        future.exception()


class BuildCache:
    """Path to Processor mapping with build de-duplication.

    Attributes:
        single_flight: De-duplicate concurrent builds of the same path.
        builds: Number of build calls started (hits do not count).
    """

    __slots__ = ("single_flight", "builds", "_built", "_pending", "_generation")

    def __init__(self, single_flight: bool = True) -> None:
        self.single_flight = single_flight
        self.builds = 0
        self._built: dict[str, Processor] = {}
        self._pending: dict[str, asyncio.Future[Processor]] = {}
        self._generation = 0

    def get(self, path: str) -> Processor | None:
        return self._built.get(path)

    def __contains__(self, path: object) -> bool:
        return path in self._built

    def __len__(self) -> int:
        return len(self._built)

    @property
    def in_flight(self) -> int:
        """Number of builds in flight that later requests can join."""
        return len(self._pending)

    def clear(self) -> None:
        """Forget every built processor.

        Builds already in flight still answer the requests waiting on them,
        but their results are not stored and later requests build afresh.
        """
        self._generation += 1
        self._built.clear()
        self._pending.clear()

    async def get_or_build(self, path: str, build: BuildFunction) -> Processor:
        """Return the processor for ``path``, building it on a miss."""
        built = self._built.get(path)
        if built is not None:
            return built

        if not self.single_flight:
            return await self._build(path, build, self._generation)

        pending = self._pending.get(path)
        if pending is None:
            pending = asyncio.ensure_future(self._build_once(path, build, self._generation))
            pending.add_done_callback(_retrieve_exception)
            self._pending[path] = pending
        else:
            logger.debug(f"Joining build in flight for {path}")
        return await asyncio.shield(pending)

    async def _build(self, path: str, build: BuildFunction, generation: int) -> Processor:
        self.builds += 1
        built = await build(path)
        if generation == self._generation:
            self._built[path] = built
        else:
            logger.debug(f"Cache cleared while building {path}, result not stored")
        return built

    async def _build_once(self, path: str, build: BuildFunction, generation: int) -> Processor:
        try:
            return await self._build(path, build, generation)
        finally:
            # after clear() the slot may belong to a newer build
            if generation == self._generation:
                self._pending.pop(path, None)

    def __repr__(self) -> str:
        return f"BuildCache(size={len(self._built)}, in_flight={len(self._pending)})"
