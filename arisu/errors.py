#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
===============================================================================
Arisu ▸ Exception Hierarchy
===============================================================================

Every project error derives from `ArisuError` so the REPL can tell expected
failures apart from programming errors.

Which layer raises what
-----------------------
* BlockNotFoundError  – PatchAction with an id outside the file's block range
* CommandFailedError  – RunAction whose command exited non‑zero
* TransportError      – backend request/streaming/decoding failure
* StepFileError       – malformed sentinel step file
* ConfigError         – invalid settings file or unknown model

Actions never let BlockNotFoundError / CommandFailedError / OSError escape;
they are folded into `ActionResult.error`. TransportError and StepFileError
abort the loop that is running.
"""
from __future__ import annotations


class ArisuError(Exception):
    """Base class for all Arisu errors."""


class BlockNotFoundError(ArisuError):
    def __init__(self, filename: str, block_id: int, block_count: int) -> None:
        self.filename = filename
        self.block_id = block_id
        self.block_count = block_count
        super().__init__(f"Block ID {block_id} not found in {filename}")


class CommandFailedError(ArisuError):
    def __init__(self, command: str, returncode: int) -> None:
        self.command = command
        self.returncode = returncode
        super().__init__(f"exit status {returncode}")


class TransportError(ArisuError):
    """The backend could not be reached or returned something unusable."""


class StepFileError(ArisuError):
    """The agent step file is missing its `Steps:` section or has no steps."""


class ConfigError(ArisuError):
    """Settings could not be loaded, validated or resolved."""


__all__ = [
    "ArisuError",
    "BlockNotFoundError",
    "CommandFailedError",
    "TransportError",
    "StepFileError",
    "ConfigError",
]
