#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
===============================================================================
Arisu ▸ Module Entry Point  (python -m arisu)
===============================================================================

Canonical invocation:
    python -m arisu [<cli args>]

What this does
--------------
* Handles a fast `--version` path without importing the full package.
* Logs a concise startup banner (version, Python, platform).
* Delegates to `arisu.cli:main`, so `python -m arisu` and the `arisu`
  console script behave identically.
"""
from __future__ import annotations

import argparse
import platform
import sys
from importlib.metadata import PackageNotFoundError, version as _pkg_version


# ─────────────────────────────────────────────────────────────────────────────
# CLI pre‑parsing (global flags only)
# ─────────────────────────────────────────────────────────────────────────────
def _parse_cli(argv: list[str]) -> tuple[argparse.Namespace, list[str]]:
    parser = argparse.ArgumentParser(prog="python -m arisu", add_help=False)
    parser.add_argument("--version", action="store_true")
    return parser.parse_known_args(argv)


def _resolve_version() -> str:
    """
    Resolve the installed version **without importing** arisu; fall back to
    `arisu.__version__` for source checkouts.
    """
    try:
        return _pkg_version("arisu")
    except PackageNotFoundError:
        from arisu import __version__

        return __version__


def _print_banner(version: str) -> None:
    from arisu import get_logger  # Local import keeps --version path fast.

    get_logger(__name__).info(
        "Arisu %s  |  Python %s  |  %s",
        version,
        platform.python_version(),
        platform.platform(),
    )


# ─────────────────────────────────────────────────────────────────────────────
# Entry
# ─────────────────────────────────────────────────────────────────────────────
def main() -> None:
    args, remaining = _parse_cli(sys.argv[1:])

    if args.version:
        print(_resolve_version())
        sys.exit(0)

    _print_banner(_resolve_version())

    from arisu.cli import main as cli_main

    sys.exit(cli_main(remaining))


if __name__ == "__main__":
    main()
