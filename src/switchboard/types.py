# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""ASGI and dispatch type definitions for switchboard.

ASGI aliases
============
Scope, Message, Receive, Send and ASGIApp follow the ASGI specification.
MutableMapping is used instead of TypedDict because ASGI servers are free
to add extension keys to scopes and messages.

Dispatch aliases
================
Next : Callable[[], Awaitable[None]]
    The continuation handed to every router. Awaiting it passes control to
    the next router of the chain. It is called explicitly, never returned.

ErrorSignal : int | BaseException
    What error callbacks receive. An ``int`` is an expected condition
    (403, 404, ...), an exception is an unexpected failure.

ErrorCallback : Callable[[HttpRequest, ErrorSignal], Awaitable[None]]
    Renders an error signal as the response of a request.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Awaitable, Callable, MutableMapping, Union

if TYPE_CHECKING:
    from .request import HttpRequest

__all__ = [
    "Scope",
    "Message",
    "Receive",
    "Send",
    "ASGIApp",
    "Next",
    "ErrorSignal",
    "ErrorCallback",
]

# ASGI Scope - connection metadata
Scope = MutableMapping[str, Any]

# ASGI Message - sent/received data
Message = MutableMapping[str, Any]

# ASGI Receive - callable to receive messages
Receive = Callable[[], Awaitable[Message]]

# ASGI Send - callable to send messages
Send = Callable[[Message], Awaitable[None]]

# ASGI Application - the main callable
ASGIApp = Callable[[Scope, Receive, Send], Awaitable[None]]

# Continuation passed along a router chain
Next = Callable[[], Awaitable[None]]

# Expected status code or unexpected failure
ErrorSignal = Union[int, BaseException]

ErrorCallback = Callable[["HttpRequest", ErrorSignal], Awaitable[None]]
