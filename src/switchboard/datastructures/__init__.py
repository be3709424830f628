# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""
Data structures for ASGI requests.

Mapping from ASGI to switchboard classes::

    scope["headers"] = [(b"...", b"...")]  →  Headers (case-insensitive)
"""

from .headers import Headers, headers_from_scope, parse_tokens

__all__ = [
    "Headers",
    "headers_from_scope",
    "parse_tokens",
]
