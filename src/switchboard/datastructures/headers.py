# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""
Case-insensitive request headers.

Purpose
=======
ASGI provides headers as ``list[tuple[bytes, bytes]]`` with Latin-1
encoding and case-preserving names. Routers only ever read headers (Host,
Accept-Encoding, X-Request-ID), so this module offers a small read-only
view with case-insensitive lookup plus token-list parsing for headers such
as Accept-Encoding.

Processing Schema::

    [(b"Accept-Encoding", b"GZip, deflate;q=0.5")]
                        ↓
    [("accept-encoding", "GZip, deflate;q=0.5")]
                        ↓
    headers.tokens("accept-encoding") → {"gzip": 1.0, "deflate": 0.5}

Definition::

    class Headers:
        def __init__(self, raw_headers: list[tuple[bytes, bytes]]) -> None
        def get(self, key: str, default: str | None = None) -> str | None
        def getlist(self, key: str) -> list[str]
        def tokens(self, key: str) -> dict[str, float]
        def items(self) -> list[tuple[str, str]]

    def headers_from_scope(scope: Mapping[str, Any]) -> Headers
    def parse_tokens(value: str | None) -> dict[str, float]
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Iterator

__all__ = ["Headers", "headers_from_scope", "parse_tokens"]


def parse_tokens(value: str | None) -> dict[str, float]:
    """
    Parse a comma-separated token list into ``{token: q-value}``.

    Tokens are lower-cased and stripped. Parameters other than ``q`` are
    ignored; a missing or unparsable ``q`` counts as 1.0.

    Example:
        >>> parse_tokens(" GZip , deflate;q=0.5, br;q=0")
        {'gzip': 1.0, 'deflate': 0.5, 'br': 0.0}
    """
    result: dict[str, float] = {}
    if not value:
        return result
    for item in value.split(","):
        token, _, params = item.partition(";")
        token = token.strip().lower()
        if not token:
            continue
        quality = 1.0
        for param in params.split(";"):
            name, _, raw = param.partition("=")
            if name.strip().lower() == "q":
                try:
                    quality = float(raw.strip())
                except ValueError:
                    quality = 1.0
        result[token] = quality
    return result


class Headers:
    """
    Read-only, case-insensitive HTTP headers.

    Names are normalized to lowercase, values are kept as sent. The same
    name can appear more than once.

    Example:
        >>> headers = Headers([(b"Host", b"api.example.com")])
        >>> headers.get("HOST")
        'api.example.com'
    """

    __slots__ = ("_headers",)

    def __init__(self, raw_headers: list[tuple[bytes, bytes]]) -> None:
        self._headers: list[tuple[str, str]] = [
            (name.decode("latin-1").lower(), value.decode("latin-1"))
            for name, value in raw_headers
        ]

    def get(self, key: str, default: str | None = None) -> str | None:
        """Return the first value for ``key`` (case-insensitive)."""
        key_lower = key.lower()
        for name, value in self._headers:
            if name == key_lower:
                return value
        return default

    def getlist(self, key: str) -> list[str]:
        """Return every value sent for ``key``."""
        key_lower = key.lower()
        return [value for name, value in self._headers if name == key_lower]

    def tokens(self, key: str) -> dict[str, float]:
        """Parse all values of a list-valued header such as Accept-Encoding."""
        return parse_tokens(",".join(self.getlist(key)))

    def items(self) -> list[tuple[str, str]]:
        return list(self._headers)

    def __getitem__(self, key: str) -> str:
        value = self.get(key)
        if value is None:
            raise KeyError(key)
        return value

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        return self.get(key) is not None

    def __iter__(self) -> Iterator[str]:
        seen: set[str] = set()
        for name, _ in self._headers:
            if name not in seen:
                seen.add(name)
                yield name

    def __len__(self) -> int:
        return len(self._headers)

    def __repr__(self) -> str:
        return f"Headers({self._headers!r})"


def headers_from_scope(scope: Mapping[str, Any]) -> Headers:
    """Create Headers from an ASGI scope (empty when the scope has none)."""
    return Headers(scope.get("headers", []))
