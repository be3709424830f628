# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Filesystem service used by routers and handlers.

Routers never touch the disk directly: they call a ``Filesystem`` for the
three operations dispatch needs (stat, directory listing, streamed read).
``LocalFilesystem`` is the disk implementation. Every blocking call is
wrapped with ``smartasync``, so inside the event loop it runs in a worker
thread and the dispatch coroutine suspends while waiting. Always await
these methods: a smartasync wrapper that has once seen a running loop
keeps returning coroutines, even when later called from sync code.

Tests and embedders can pass any object satisfying the protocol, e.g. an
in-memory tree that records which paths were stat'ed.
"""

from __future__ import annotations

import os
import stat as stat_module
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import IO, Protocol, runtime_checkable

from smartasync import smartasync

__all__ = ["FileStat", "Filesystem", "LocalFilesystem", "DEFAULT_CHUNK_SIZE"]

DEFAULT_CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class FileStat:
    """Result of a successful stat call."""

    is_dir: bool
    is_file: bool
    size: int = 0


@runtime_checkable
class Filesystem(Protocol):
    """Interface of the filesystem collaborator.

    ``stat`` raises ``OSError`` (usually ``FileNotFoundError``) when the path
    cannot be stat'ed. ``listdir`` returns names in filesystem order, which
    is unspecified.
    """

    async def stat(self, path: str) -> FileStat:
        ...

    async def listdir(self, path: str) -> list[str]:
        ...

    def iter_bytes(
        self, path: str, chunk_size: int = DEFAULT_CHUNK_SIZE
    ) -> AsyncIterator[bytes]:
        ...


class LocalFilesystem:
    """Local disk implementation of ``Filesystem``."""

    __slots__ = ()

    @smartasync
    def stat(self, path: str) -> FileStat:
        """Stat ``path`` following symlinks."""
        result = os.stat(path)
        return FileStat(
            is_dir=stat_module.S_ISDIR(result.st_mode),
            is_file=stat_module.S_ISREG(result.st_mode),
            size=result.st_size,
        )

    @smartasync
    def listdir(self, path: str) -> list[str]:
        """Directory entries in the order the OS returns them."""
        return os.listdir(path)

    @smartasync
    def _open(self, path: str) -> IO[bytes]:
        return open(path, "rb")

    @smartasync
    def _read(self, handle: IO[bytes], size: int) -> bytes:
        return handle.read(size)

    @smartasync
    def _close(self, handle: IO[bytes]) -> None:
        handle.close()

    async def iter_bytes(
        self, path: str, chunk_size: int = DEFAULT_CHUNK_SIZE
    ) -> AsyncIterator[bytes]:
        """Stream a file in chunks without loading it whole."""
        handle = await self._open(path)
        try:
            while True:
                chunk = await self._read(handle, chunk_size)
                if not chunk:
                    break
                yield chunk
        finally:
            await self._close(handle)

    def __repr__(self) -> str:
        return "LocalFilesystem()"


if __name__ == "__main__":
    import asyncio
    import sys

    async def _show(target: str) -> None:
        fs = LocalFilesystem()
        info = await fs.stat(target)
        print(f"stat: {info}")
        if info.is_dir:
            print(f"entries: {await fs.listdir(target)}")

    # run through the loop, like dispatch does
    asyncio.run(_show(sys.argv[1] if len(sys.argv) > 1 else "."))
