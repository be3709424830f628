# Copyright 2025 Softwell S.r.l.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Exception classes for switchboard dispatch.

Error signals
-------------
Routers report problems through an error callback that receives either a
plain status code (an expected condition such as 403 or 404) or an
exception (an unexpected failure). The classes below are the exceptions the
framework itself raises or understands:

1. HTTPException - raised by user handlers to ask for a given status.
   Error renderers treat it like the plain status code it carries.
2. ProtocolViolation - a router step broke the dispatch contract, e.g. by
   writing two responses for one request.
3. BuildError - a Cached build produced something that cannot process
   requests (e.g. a dynamic module without ``process``).

Design Decisions
----------------
- No validation: status codes are not validated.
- headers: Accepts both dict[str, str] and list[tuple[str, str]], stored
  as a list so duplicate names survive.

Example:
    >>> raise HTTPException(404, detail="No such page")
    >>> raise Redirect("/new/location")
"""


class HTTPException(Exception):
    """
    HTTP exception with status code and detail.

    Raise this in route handlers to answer with an HTTP error. Error
    renderers convert it to a response with the given status.

    Attributes:
        status_code: HTTP status code (expected 4xx or 5xx, not validated)
        detail: Error detail message
        headers: Response headers as list of tuples (supports duplicate names)
    """

    def __init__(
        self,
        status_code: int,
        detail: str = "",
        headers: dict[str, str] | list[tuple[str, str]] | None = None,
    ) -> None:
        self.status_code = status_code
        self.detail = detail
        if headers is None:
            self.headers: list[tuple[str, str]] | None = None
        elif isinstance(headers, dict):
            self.headers = list(headers.items())
        else:
            self.headers = list(headers)
        super().__init__(detail)

    def __repr__(self) -> str:
        """Return detailed string representation."""
        return f"HTTPException(status_code={self.status_code}, detail={self.detail!r})"


class Redirect(HTTPException):
    """HTTP redirect exception. Raises 302 redirect by default."""

    def __init__(self, url: str, status_code: int = 302) -> None:
        super().__init__(status_code, headers={"Location": url})
        self.url = url

    def __repr__(self) -> str:
        return f"Redirect(url={self.url!r}, status_code={self.status_code})"


class HTTPNotFound(HTTPException):
    """HTTP 404 Not Found exception."""

    def __init__(self, detail: str = "Not found") -> None:
        super().__init__(404, detail=detail)


class HTTPForbidden(HTTPException):
    """HTTP 403 Forbidden exception."""

    def __init__(self, detail: str = "Forbidden") -> None:
        super().__init__(403, detail=detail)


class ProtocolViolation(RuntimeError):
    """A router or handler broke the one-response-per-request contract."""


class BuildError(TypeError):
    """A build function returned an object that cannot process requests.

    Attributes:
        path: Filesystem path whose build failed.
    """

    def __init__(self, path: str, detail: str) -> None:
        self.path = path
        self.detail = detail
        super().__init__(f"{path}: {detail}")

    def __repr__(self) -> str:
        return f"BuildError(path={self.path!r}, detail={self.detail!r})"
