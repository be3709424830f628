# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""MIME type lookup by file name.

Thin layer over ``mimetypes`` that registers the types browsers care about
(some platforms ship incomplete tables) and appends a charset to textual
types.

Example:
    >>> lookup("style.css")
    'text/css; charset=utf-8'
    >>> lookup("logo.png")
    'image/png'
    >>> lookup("blob")
    'application/octet-stream'
"""

from __future__ import annotations

import mimetypes

__all__ = ["lookup", "DEFAULT_TYPE"]

DEFAULT_TYPE = "application/octet-stream"

# Ensure common types are registered
mimetypes.add_type("application/javascript", ".js")
mimetypes.add_type("application/javascript", ".mjs")
mimetypes.add_type("text/css", ".css")
mimetypes.add_type("image/svg+xml", ".svg")
mimetypes.add_type("application/json", ".json")
mimetypes.add_type("text/html", ".html")
mimetypes.add_type("text/html", ".htm")
mimetypes.add_type("text/markdown", ".md")
mimetypes.add_type("font/woff2", ".woff2")


def lookup(filename: str, charset: str = "utf-8") -> str:
    """Content-Type for ``filename``, guessed from its extension.

    A trailing ``!`` (dynamic resource marker) is ignored.
    """
    content_type, _ = mimetypes.guess_type(filename.rstrip("!"), strict=False)
    if content_type is None:
        return DEFAULT_TYPE
    if content_type.startswith("text/") or content_type == "application/javascript":
        return f"{content_type}; charset={charset}"
    return content_type
