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

"""
switchboard CLI entry point.

Usage:
    switchboard serve ./site              # Serve the sites of ./site/config.yaml
    switchboard serve ./site --port 9000  # Override port
"""

from __future__ import annotations

import sys

USAGE = """\
Usage: switchboard serve <server_dir> [options]

Arguments:
  server_dir        Directory holding config.yaml

Options:
  --host HOST       Server host (default: 127.0.0.1)
  --port PORT       Server port (default: 8000)
  --reload          Enable auto-reload
  --config FILE     Config file in server_dir (default: config.yaml)
  --version, -v     Show version
  --help, -h        Show this help"""


def cmd_serve(argv: list[str]) -> int:
    """Run the dispatch server."""
    from .server import DispatchServer

    server = DispatchServer(argv=argv)

    server_dir = server.base_dir
    if not server_dir.is_dir():
        print(f"Error: '{server_dir}' is not a directory.", file=sys.stderr)
        return 1

    print("switchboard starting...", flush=True)
    print(f"Server dir: {server_dir}", flush=True)
    print(f"Server: http://{server.config.server['host']}:{server.config.server['port']}", flush=True)
    if server.config.server["reload"]:
        print("Mode: development (auto-reload enabled)", flush=True)
    print(flush=True)

    try:
        server.run()
    except KeyboardInterrupt:
        print("\nShutdown.")

    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = sys.argv[1:] if argv is None else argv

    if "--version" in args or "-v" in args:
        from . import __version__

        print(f"switchboard {__version__}")
        return 0

    if not args or "--help" in args or "-h" in args:
        print(USAGE)
        return 0

    subcommand = args[0]
    if subcommand != "serve":
        print(f"Error: unknown subcommand '{subcommand}'", file=sys.stderr)
        return 1

    return cmd_serve(args[1:])


if __name__ == "__main__":
    sys.exit(main())
