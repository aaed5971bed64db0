"""
Command-line interface for SQLBridge.

Notes
-----
The CLI is thin. It parses arguments and delegates to the bridge engine.
Commands run through the same dispatch bridge as the GUI, so they are checked
against the registry and written to the same invocation log.

Exit codes
----------
- 0: success
- 2: the bridge answered with an error envelope, or a usage error
"""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Any

from bridge_engine.commands import ESTABLISH_DATABASE_TARGET
from bridge_engine.dispatch import DispatchBridge
from bridge_engine.envelope import ErrorEnvelope
from bridge_engine.errors import ProtocolError
from bridge_engine.paths_and_safety import (
    SafetyViolationError,
    bridge_paths_as_text,
    default_data_root,
    resolve_bridge_paths,
)
from bridge_engine.service import open_bridge
from bridge_engine.settings_store import load_bridge_settings
from bridge_engine.wire import decode_reply, encode_request
from gui.adapters.caller_stub import render_value


def build_parser() -> argparse.ArgumentParser:
    """
    Build and return the top-level argument parser.

    Returns
    -------
    argparse.ArgumentParser
        Configured parser.
    """
    parser = argparse.ArgumentParser(
        prog="sqlbridge",
        description="Audited command bridge to an SQLite database",
    )
    parser.add_argument(
        "--data-root",
        default=None,
        help="Override the data root (settings and invocation log). If omitted, defaults are used.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("paths", help="Print resolved runtime paths")
    sub.add_parser("commands", help="List the registered bridge commands")

    run_p = sub.add_parser("run", help="Dispatch one command through the bridge")
    run_p.add_argument("--db", default=None, help="Database target to establish first")
    run_p.add_argument("--uri", action="store_true", help="Treat --db as an SQLite URI")
    run_p.add_argument("--autocommit", action="store_true", help="Open --db in autocommit mode")
    run_p.add_argument("name", help="Command name, e.g. fetch-all-rows")
    run_p.add_argument(
        "args",
        nargs="*",
        help="Command arguments as JSON literals; anything that is not valid JSON is sent as text.",
    )

    log_p = sub.add_parser("log", help="Print the invocation log")
    log_p.add_argument("--tail", type=int, default=None, help="Print only the last N lines")

    sub.add_parser("gui", help="Launch the desktop GUI")

    return parser


def parse_cli_literal(text: str) -> Any:
    """Parse one CLI argument as JSON, falling back to the raw text."""
    try:
        return json.loads(text)
    except (ValueError, RecursionError):
        return text


def main(argv: list[str] | None = None) -> int:
    """
    CLI entry point.

    Parameters
    ----------
    argv:
        Optional argument vector. If None, argparse uses sys.argv.

    Returns
    -------
    int
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    data_root = Path(args.data_root) if args.data_root else None

    if args.command == "gui":
        from gui.app import main as gui_main

        return gui_main(data_root=data_root)

    logging.basicConfig(level=logging.INFO, format="%(message)s")

    try:
        if args.command == "paths":
            root = data_root or default_data_root()
            settings = load_bridge_settings(resolve_bridge_paths(root).settings_path)
            print(bridge_paths_as_text(resolve_bridge_paths(root, settings.log_file_name)))
            return 0

        runtime = open_bridge(data_root)
    except SafetyViolationError as exc:
        print(f"ERROR: {exc}")
        return 2

    if args.command == "commands":
        for spec in runtime.bridge.registry:
            params = " ".join(p.name if p.required else f"[{p.name}]" for p in spec.parameters)
            print(f"{spec.name} {params}".rstrip())
        return 0

    if args.command == "log":
        lines = runtime.bridge.invocation_log.read_records()
        if args.tail is not None:
            lines = lines[-args.tail :] if args.tail > 0 else []
        for line in lines:
            print(line)
        return 0

    if args.command == "run":
        try:
            return _run_command(runtime.bridge, args)
        finally:
            runtime.close()

    parser.print_help()
    return 0


def _run_command(bridge: DispatchBridge, args: argparse.Namespace) -> int:
    if args.db is not None and args.name != ESTABLISH_DATABASE_TARGET:
        connected = bridge.dispatch(ESTABLISH_DATABASE_TARGET, args.db, args.uri, args.autocommit)
        if isinstance(connected, ErrorEnvelope):
            print(f"ERROR: {connected.error}")
            return 2

    try:
        request = encode_request(args.name, [parse_cli_literal(a) for a in args.args])
        result = decode_reply(bridge.handle(request))
    except ProtocolError as exc:
        print(f"ERROR: {exc}")
        return 2
    if isinstance(result, ErrorEnvelope):
        print(f"ERROR: {result.error}")
        return 2
    print(render_value(result))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
