# Copyright 2025 Softwell S.r.l.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     https://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
ASGI Lifespan Management.

ServerLifespan answers the ASGI lifespan protocol for DispatchServer.
Startup opens the server's LogSink, shutdown closes it, so log output is
flushed before the process exits. Both record a line through
``LogSink.log``.

- Errors during startup send ``lifespan.startup.failed``
- Errors during shutdown are logged but don't prevent completion
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .types import Receive, Scope, Send

if TYPE_CHECKING:
    from .server import DispatchServer

__all__ = ["ServerLifespan"]

logger = logging.getLogger("switchboard.lifespan")


class ServerLifespan:
    """ASGI lifespan handler for DispatchServer.

    Attributes:
        server: The DispatchServer whose resources are managed.
    """

    __slots__ = ("server", "_started")

    def __init__(self, server: DispatchServer) -> None:
        self.server = server
        self._started = False

    @property
    def started(self) -> bool:
        return self._started

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:  # noqa: ARG002
        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    await self.startup()
                    await send({"type": "lifespan.startup.complete"})
                except Exception as e:
                    logger.exception("Startup failed")
                    await send({"type": "lifespan.startup.failed", "message": str(e)})
                    return

            elif msg_type == "lifespan.shutdown":
                try:
                    await self.shutdown()
                except Exception:
                    logger.exception("Shutdown error")
                finally:
                    await send({"type": "lifespan.shutdown.complete"})
                return

    async def startup(self) -> None:
        self.server.log_sink.open()
        self._started = True
        self.server.log_sink.log(f"DispatchServer started, root={self.server.root!r}")

    async def shutdown(self) -> None:
        self.server.log_sink.log("DispatchServer shutting down")
        self._started = False
        self.server.log_sink.close()
