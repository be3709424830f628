# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""LogSink - the server's log destination with an explicit lifecycle.

Modules log through ``logging.getLogger("switchboard...")`` as usual. The
sink decides where those records end up: it attaches a handler to the
``switchboard`` logger on ``open()`` and flushes and detaches it on
``close()``. DispatchServer opens it at lifespan startup and closes it at
shutdown, so nothing is configured at import time.

``log(message)`` is fire-and-forget: a failing handler never raises into
the caller (``logging`` reports handler errors on stderr instead).

Config (config.yaml)::

    log:
      path: out.log     # omit to log to stderr
      level: INFO
      stack: false      # attach the caller's stack to every log() entry
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

__all__ = ["LogSink", "LOGGER_NAME"]

LOGGER_NAME = "switchboard"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class LogSink:
    """Injected logging destination for one server.

    Attributes:
        path: Log file, or None for stderr.
        level: Numeric level set on the ``switchboard`` logger.
        stack: Record the call stack with every ``log()`` entry.
    """

    __slots__ = ("path", "level", "stack", "logger", "_handler", "_previous_level")

    def __init__(
        self,
        path: str | Path | None = None,
        level: str | int = "INFO",
        stack: bool = False,
    ) -> None:
        self.path = Path(path) if path else None
        self.level = level if isinstance(level, int) else getattr(logging, str(level).upper(), logging.INFO)
        self.stack = stack
        self.logger = logging.getLogger(LOGGER_NAME)
        self._handler: logging.Handler | None = None
        self._previous_level = logging.NOTSET

    @property
    def is_open(self) -> bool:
        return self._handler is not None

    def open(self) -> None:
        """Attach the handler. Opening twice is a no-op."""
        if self._handler is not None:
            return
        if self.path is not None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            handler: logging.Handler = logging.FileHandler(self.path, encoding="utf-8")
        else:
            handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        self.logger.addHandler(handler)
        self._previous_level = self.logger.level
        self.logger.setLevel(self.level)
        self._handler = handler

    def log(self, message: object) -> None:
        """Record ``message`` at INFO level."""
        self.logger.info(str(message), stack_info=self.stack, stacklevel=2)

    def close(self) -> None:
        """Flush and detach the handler, restoring the logger level."""
        handler = self._handler
        if handler is None:
            return
        self._handler = None
        self.logger.removeHandler(handler)
        self.logger.setLevel(self._previous_level)
        handler.flush()
        handler.close()

    def __enter__(self) -> LogSink:
        self.open()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"LogSink(path={str(self.path) if self.path else None!r}, open={self.is_open})"
