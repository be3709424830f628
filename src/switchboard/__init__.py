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

"""switchboard - request dispatch through composable routers.

Main components:
    DispatchServer: ASGI entry point, loads config, builds the router tree
    HttpRequest: request adapter carrying host, normalized path and depth
    ResponseSender: single response per request, gzip/deflate negotiation

Routers:
    Domain, Subdomain: switch on host labels
    Static: directory tree with pre-filters and extension handlers
    Raw, Simple, Sequence: function routers and chains

Handlers:
    Cached: build once per path, reuse (BuildCache)
    Dynamic: evaluate ``!``-suffixed Python sources

Usage:
    from switchboard import DispatchServer

    server = DispatchServer(server_dir=".")
    server.run()  # Starts uvicorn
"""

__version__ = "0.1.0"

from .datastructures import Headers, headers_from_scope
from .default_pages import ErrorRenderer, default_error, default_ls
from .exceptions import (
    BuildError,
    HTTPException,
    HTTPForbidden,
    HTTPNotFound,
    ProtocolViolation,
    Redirect,
)
from .handlers import BuildCache, Cached, Dynamic, Handler, dynamic_require
from .lifespan import ServerLifespan
from .log import LogSink
from .paths import normalize, normalize_path
from .request import HttpRequest
from .response import ResponseSender, negotiate_encoding
from .routers import Continuation, Domain, Raw, Router, Sequence, Simple, Static, Subdomain
from .server import DispatchServer, build_router
from .server_config import ServerConfig
from .storage import Filesystem, LocalFilesystem
from .types import ASGIApp, Message, Receive, Scope, Send

__all__ = [
    "__version__",
    # Server
    "DispatchServer",
    "ServerConfig",
    "ServerLifespan",
    "build_router",
    # Request / response
    "HttpRequest",
    "ResponseSender",
    "negotiate_encoding",
    "normalize",
    "normalize_path",
    "Headers",
    "headers_from_scope",
    # Routers
    "Router",
    "Raw",
    "Simple",
    "Sequence",
    "Domain",
    "Subdomain",
    "Static",
    "Continuation",
    # Handlers
    "Handler",
    "Cached",
    "Dynamic",
    "BuildCache",
    "dynamic_require",
    # Pages and logging
    "ErrorRenderer",
    "default_error",
    "default_ls",
    "LogSink",
    # Storage
    "Filesystem",
    "LocalFilesystem",
    # Exceptions
    "HTTPException",
    "HTTPNotFound",
    "HTTPForbidden",
    "Redirect",
    "ProtocolViolation",
    "BuildError",
    # Types
    "ASGIApp",
    "Message",
    "Receive",
    "Scope",
    "Send",
]
