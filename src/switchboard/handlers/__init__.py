# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Handlers package - per-file processing behind the Static router.

- Handler: interface, ``process(router, request, path)``
- Cached: builds a processor once per path (BuildCache) and reuses it
- Dynamic: pre-filter evaluating ``!``-suffixed Python sources
"""

from .base import Handler, Processor
from .cache import BuildCache
from .cached import Cached
from .dynamic import MARKER, Dynamic, DynamicModule, dynamic_require

__all__ = [
    "Handler",
    "Processor",
    "BuildCache",
    "Cached",
    "Dynamic",
    "DynamicModule",
    "dynamic_require",
    "MARKER",
]
