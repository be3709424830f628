# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Routers package - the closed set of router variants.

- Raw: wraps a route function
- Simple: path predicate plus handler
- Sequence: several routers as one chain
- Domain: dispatch root keyed by first subdomain label
- Subdomain: nested switch on the label at ``request.depth``
- Static: directory tree with pre-filters and extension handlers
"""

from .base import Continuation, Raw, Router, Sequence, Simple, chain
from .domain import WILDCARD, Domain, Subdomain
from .static_router import INDEX_PATTERN, Static

__all__ = [
    "Router",
    "Raw",
    "Simple",
    "Sequence",
    "Domain",
    "Subdomain",
    "Static",
    "Continuation",
    "chain",
    "WILDCARD",
    "INDEX_PATTERN",
]
