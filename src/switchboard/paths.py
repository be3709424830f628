# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Request path canonicalization.

Every request path goes through ``normalize_path()`` (decoded ASGI paths)
or ``normalize()`` (raw request targets) before any router sees it, so
``..`` sequences, duplicate slashes and backslash tricks can never address
an ancestor of the served directory.

Example:
    >>> normalize("/docs/../../etc/passwd?x=1")
    '/etc/passwd'
    >>> join_base("/srv/www", "/etc/passwd")
    '/srv/www/etc/passwd'
"""

from __future__ import annotations

import os
import posixpath
import re
from urllib.parse import urlsplit

__all__ = ["normalize", "normalize_path", "join_base", "has_hidden_component", "extension"]

_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*://")


def normalize(raw_url: str) -> str:
    """Return the canonical absolute path of a request target.

    Query and fragment are dropped, backslashes count as separators and
    ``.``/``..`` segments are collapsed against ``/``. Never raises:
    anything that cannot be parsed yields ``"/"``.
    """
    if not isinstance(raw_url, str) or "\x00" in raw_url:
        return "/"
    if _SCHEME_RE.match(raw_url):
        try:
            path = urlsplit(raw_url).path
        except ValueError:
            return "/"
    else:
        # "//host/x" is a path here, not a network location
        path = raw_url.split("#", 1)[0].split("?", 1)[0]
    return normalize_path(path)


def normalize_path(path: str) -> str:
    """Canonicalize an already decoded path such as ASGI's ``scope["path"]``.

    Unlike ``normalize`` nothing is split off: ``?`` and ``#`` are plain
    characters of a decoded path (``/what%3F.txt`` arrives as ``/what?.txt``).
    """
    if not isinstance(path, str) or "\x00" in path:
        return "/"
    path = path.replace("\\", "/")
    normalized = posixpath.normpath(posixpath.join("/", path))
    # normpath preserves exactly two leading slashes (POSIX rule)
    return "/" + normalized.lstrip("/")


def join_base(base: str, normalized: str) -> str:
    """Join a normalized request path under ``base``."""
    relative = normalized.lstrip("/")
    if not relative:
        return base
    return os.path.join(base, *relative.split("/"))


def has_hidden_component(path: str) -> bool:
    """True if any segment of ``path`` starts with a dot."""
    return any(
        segment.startswith(".")
        for segment in path.replace(os.sep, "/").split("/")
        if segment
    )


def extension(path: str) -> str:
    """File extension including the dot, ``""`` when there is none."""
    return posixpath.splitext(os.path.basename(path))[1]
