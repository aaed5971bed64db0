"""
Module entrypoint for the SQLBridge CLI.

This file exists so that `python -m sqlbridge ...` works consistently in all
environments, including when the console-script wrapper is not installed.
"""

from __future__ import annotations

from sqlbridge.cli import main


def _run() -> None:
    raise SystemExit(main())


if __name__ == "__main__":
    _run()
