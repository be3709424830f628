# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Server configuration - merges defaults, YAML files, env and argv.

Sources, lowest priority first:

1. ``DEFAULTS`` (server section only)
2. ``~/.switchboard/config.yaml``
3. ``<server_dir>/config.yaml``, or the file named by ``--config``
4. ``SWITCHBOARD_*`` environment variables and command line arguments
5. arguments passed to ``ServerConfig`` itself

Only the ``server`` section takes values from 1, 4 and 5. Every other
section (``log``, ``errors``, ``middleware``, ``sites`` and the
``<name>_middleware`` sections) comes from the YAML files, the project file
overriding the global one key by key.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from genro_toolbox import SmartOptions  # type: ignore[import-untyped]

__all__ = ["ServerConfig", "GLOBAL_CONFIG_DIR", "site_entries"]

DEFAULTS = {"host": "127.0.0.1", "port": 8000, "reload": False}

GLOBAL_CONFIG_DIR = ".switchboard"

CONFIG_FILE = "config.yaml"


def _server_opts_spec(
    server_dir: str,
    host: str,
    port: int,
    reload: bool,
    config: str,
) -> None:
    """Signature read by SmartOptions for env/argv parsing. No defaults, so
    unset options never shadow YAML values."""


def _plain(value: Any) -> Any:
    """SmartOptions and nested lists of them as plain Python values."""
    if hasattr(value, "as_dict"):
        value = value.as_dict()
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


def site_entries(value: Any) -> list[dict[str, Any]]:
    """Site entries as a list of plain dicts, in configuration order.

    SmartOptions turns a YAML list of ``name:``-keyed entries into a mapping
    keyed by those names, so both shapes are accepted::

        [{"name": "api", "base": "api"}]   ->  [{"name": "api", "base": "api"}]
        {"api": {"base": "api"}}           ->  [{"name": "api", "base": "api"}]
    """
    value = _plain(value)
    if not value:
        return []
    if isinstance(value, dict):
        pairs = list(value.items())
    elif isinstance(value, list):
        pairs = [(None, entry) for entry in value]
    else:
        raise ValueError(f"Site entries must be a list or a mapping, got {type(value).__name__}")
    entries: list[dict[str, Any]] = []
    for name, entry in pairs:
        if not isinstance(entry, dict):
            raise ValueError(f"Site entry must be a mapping, got {entry!r}")
        entry = dict(entry)
        if name is not None:
            entry.setdefault("name", name)
        entries.append(entry)
    return entries


def _yaml_options(path: Path) -> SmartOptions:
    return SmartOptions(str(path)) if path.is_file() else SmartOptions({})


def _section(opts: SmartOptions, name: str) -> SmartOptions:
    return opts[name] or SmartOptions({})


class ServerConfig:
    """Configuration of one DispatchServer.

    Attributes:
        options: The merged SmartOptions, ``server`` section included.
    """

    __slots__ = ("options",)

    def __init__(
        self,
        server_dir: str | Path | None = None,
        host: str | None = None,
        port: int | None = None,
        reload: bool | None = None,
        argv: list[str] | None = None,
    ) -> None:
        explicit = SmartOptions(
            dict(
                server_dir=None if server_dir is None else str(server_dir),
                host=host,
                port=port,
                reload=reload,
            ),
            ignore_none=True,
        )
        command_line = SmartOptions(_server_opts_spec, env="SWITCHBOARD", argv=argv or [])
        root = Path(explicit["server_dir"] or command_line["server_dir"] or ".").resolve()

        user_file = _yaml_options(Path.home() / GLOBAL_CONFIG_DIR / CONFIG_FILE)
        project_file = _yaml_options(root / (command_line["config"] or CONFIG_FILE))

        server = (
            SmartOptions(DEFAULTS)
            + _section(user_file, "server")
            + _section(project_file, "server")
            + command_line
            + explicit
        )
        server["server_dir"] = root

        self.options = user_file + project_file
        self.options["server"] = server

    @property
    def server(self) -> SmartOptions:
        """host, port, reload and the resolved server_dir."""
        result: SmartOptions = self.options["server"]
        return result

    @property
    def server_dir(self) -> Path:
        return Path(self.server["server_dir"])

    @property
    def middleware(self) -> Any:
        return self.options["middleware"] or {}

    @property
    def log(self) -> dict[str, Any]:
        """LogSink keyword arguments; a relative ``path`` is taken from server_dir."""
        opts = _plain(self.options["log"]) or {}
        path = opts.get("path")
        if path and not Path(path).is_absolute():
            opts["path"] = str(self.server_dir / path)
        return opts

    @property
    def errors(self) -> dict[str, Any]:
        return _plain(self.options["errors"]) or {}

    @property
    def sites(self) -> list[dict[str, Any]]:
        """Site entries as plain dicts, in configuration order."""
        return site_entries(self.options["sites"])

    def __getitem__(self, name: str) -> Any:
        return self.options[name]


if __name__ == "__main__":
    config = ServerConfig()
    print(f"Server: {config.server['host']}:{config.server['port']}")
    print(f"Middleware: {config.middleware}")
    print(f"Sites: {config.sites}")
