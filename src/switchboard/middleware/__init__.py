# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Middleware package - ASGI wrappers placed around router dispatch.

Every module in this package is imported on first use of the package, and
every ``BaseMiddleware`` subclass registers itself under its
``middleware_name``. ``middleware_chain`` then builds the wrapper stack the
server runs in front of ``DispatchServer.dispatch``.

config.yaml::

    middleware:
      logging: on
      timeout: on

    timeout_middleware:
      seconds: 10

Bundled middleware (lower order wraps further out):

    ===========  =====  =======  ==========================================
    name         order  default  role
    ===========  =====  =======  ==========================================
    errors       100    on       last-resort 500 / HTTPException rendering
    logging      200    off      access log on ``switchboard.access``
    timeout      300    off      504 when dispatch exceeds ``seconds``
    ===========  =====  =======  ==========================================
"""

from __future__ import annotations

import importlib
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..types import ASGIApp, Receive, Scope, Send

MIDDLEWARE_REGISTRY: dict[str, type["BaseMiddleware"]] = {}

_TRUE_WORDS = frozenset({"on", "true", "yes", "1"})


class BaseMiddleware(ABC):
    """Registered ASGI wrapper.

    Subclasses set ``middleware_name`` (registry key, class name when
    empty), ``middleware_order`` and ``middleware_default``. Keyword
    arguments of ``__init__`` are read from the ``<name>_middleware``
    config section.
    """

    middleware_name: str = ""
    middleware_order: int = 500
    middleware_default: bool = False

    __slots__ = ("app",)

    def __init__(self, app: ASGIApp, **kwargs: Any) -> None:
        self.app = app

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        name = cls.middleware_name or cls.__name__
        if name in MIDDLEWARE_REGISTRY:
            raise ValueError(f"Middleware name '{name}' already registered")
        cls.middleware_name = name
        MIDDLEWARE_REGISTRY[name] = cls

    @abstractmethod
    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None: ...


def _load_bundled() -> None:
    for module in sorted(Path(__file__).parent.glob("[!_]*.py")):
        importlib.import_module(f".{module.stem}", __package__)


def _as_flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_WORDS
    return bool(value)


def _plain_mapping(value: Any) -> Any:
    return value.as_dict() if hasattr(value, "as_dict") else value


def switches(middleware_config: Any) -> dict[str, bool]:
    """Normalize the ``middleware`` section to ``{name: enabled}``.

    Accepts a mapping of on/off values (plain dict or SmartOptions), a
    comma-separated string or an iterable of names (all enabled). Names
    that are not registered raise ValueError, so a typo in config.yaml
    fails at startup instead of silently dropping a wrapper.
    """
    middleware_config = _plain_mapping(middleware_config)
    if not middleware_config:
        result: dict[str, bool] = {}
    elif isinstance(middleware_config, str):
        result = {name.strip(): True for name in middleware_config.split(",") if name.strip()}
    elif isinstance(middleware_config, Mapping):
        result = {str(name): _as_flag(value) for name, value in middleware_config.items()}
    elif isinstance(middleware_config, Iterable):
        result = {str(name): True for name in middleware_config}
    else:
        raise TypeError(f"Unsupported middleware config: {middleware_config!r}")
    unknown = sorted(set(result) - set(MIDDLEWARE_REGISTRY))
    if unknown:
        raise ValueError(f"Unknown middleware: {', '.join(unknown)}")
    return result


def _options_for(full_config: Any, name: str) -> dict[str, Any]:
    if full_config is None:
        return {}
    key = f"{name}_middleware"
    # SmartOptions answers None for missing keys, plain dicts raise
    section = full_config.get(key) if isinstance(full_config, Mapping) else full_config[key]
    section = _plain_mapping(section)
    return dict(section) if section else {}


def middleware_chain(
    middleware_config: str | list[str] | dict[str, Any] | None,
    app: ASGIApp,
    full_config: Any = None,
) -> ASGIApp:
    """Wrap ``app`` with every enabled middleware, lowest order outermost.

    Args:
        middleware_config: The ``middleware`` section (see ``switches``).
        app: The innermost ASGI app, the server's dispatch.
        full_config: Whole configuration, searched for ``<name>_middleware``.

    Returns:
        The outermost wrapper, or ``app`` itself when nothing is enabled.
    """
    wanted = switches(middleware_config)
    active = sorted(
        (cls for name, cls in MIDDLEWARE_REGISTRY.items() if wanted.get(name, cls.middleware_default)),
        key=lambda cls: cls.middleware_order,
        reverse=True,
    )
    for cls in active:
        app = cls(app, **_options_for(full_config, cls.middleware_name))
    return app


_load_bundled()
globals().update(MIDDLEWARE_REGISTRY)

__all__ = [
    "BaseMiddleware",
    "MIDDLEWARE_REGISTRY",
    "middleware_chain",
    "switches",
    *MIDDLEWARE_REGISTRY.keys(),
]
