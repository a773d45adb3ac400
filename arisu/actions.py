#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
===============================================================================
Arisu ▸ Action Model
===============================================================================

Purpose
-------
Executable counterparts of the scanned directives:

| action        | effect                                  | gate        |
|---------------|-----------------------------------------|-------------|
| EditAction    | create/overwrite a file verbatim        | auto_edit   |
| PatchAction   | replace or delete one block of a file   | auto_edit   |
| RunAction     | run a shell command, mirror + capture   | auto_run    |
| ReadAction    | return the file as a labeled block list | (ungated)   |

Contract
--------
`execute(gating, confirm=ask_yes_no) -> ActionResult(output, error)`

* The gate is passed in explicitly; nothing is read from process state.
* When the gate flag is off, `confirm(question)` decides. Declining is not
  an error: the result just says the action was skipped.
* Failures never raise. Missing blocks, I/O errors, unusable names (NUL
  bytes) and non‑zero exits land in `ActionResult.error` and the output
  text explains them, so a batch keeps going and the model sees what
  happened.
* Every action re‑reads its target when it runs; nothing is cached between
  actions, even for the same file.
* Patch keeps CRLF line endings and non‑UTF‑8 bytes outside the patched
  block; Read shows undecodable bytes as U+FFFD.

Results are echoed to the terminal as they happen.
"""
from __future__ import annotations

import abc
import shutil
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Callable, List, Optional, Tuple, cast

from arisu import get_logger
from arisu.blocks import render_listing, segment, serialize
from arisu.directives import (
    Directive,
    EditDirective,
    PatchDirective,
    ReadDirective,
    RunDirective,
)
from arisu.errors import BlockNotFoundError, CommandFailedError

log = get_logger(__name__)

Confirm = Callable[[str], bool]

NO_OUTPUT = "Command executed successfully (no output)."

# Prefer bash so model‑written commands behave as they would in a terminal.
_SHELL: Optional[str] = shutil.which("bash")


# ─────────────────────────────────────────────────────────────────────────────
# Gating & results
# ─────────────────────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class GatingConfig:
    auto_edit: bool = False
    auto_run: bool = False


@dataclass
class ActionResult:
    output: str
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def ask_yes_no(question: str) -> bool:
    """
    Interactive y/n on the terminal. Only "y"/"yes" approve; EOF declines.
    """
    try:
        answer = input(f"{question} (y/n): ")
    except EOFError:
        return False
    return answer.strip().lower() in {"y", "yes"}


def _echo(message: str) -> None:
    print(message, flush=True)


def _read_source(path: Path) -> Tuple[str, str]:
    """
    Return (text with LF line endings, the file's line ending).

    Undecodable bytes are kept as surrogate escapes so a rewrite restores them.
    """
    with path.open("r", encoding="utf-8", errors="surrogateescape", newline="") as fh:
        raw = fh.read()
    eol = "\r\n" if "\r\n" in raw else "\n"
    return raw.replace("\r\n", "\n"), eol


def _write_source(path: Path, text: str, eol: str) -> None:
    with path.open("w", encoding="utf-8", errors="surrogateescape", newline="") as fh:
        fh.write(text.replace("\n", eol) if eol != "\n" else text)


def _displayable(text: str) -> str:
    return text.encode("utf-8", "surrogateescape").decode("utf-8", "replace")


# ─────────────────────────────────────────────────────────────────────────────
# Actions
# ─────────────────────────────────────────────────────────────────────────────
class Action(abc.ABC):
    @abc.abstractmethod
    def execute(self, gating: GatingConfig, confirm: Confirm = ask_yes_no) -> ActionResult:
        ...


@dataclass
class EditAction(Action):
    filename: str
    content: str

    def execute(self, gating: GatingConfig, confirm: Confirm = ask_yes_no) -> ActionResult:
        if not (gating.auto_edit or confirm(f"Overwrite/Create {self.filename}?")):
            _echo(f"Write on {self.filename} skipped.")
            return ActionResult(f"Write on {self.filename} skipped.")

        path = Path(self.filename)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(self.content, encoding="utf-8")
        except (OSError, ValueError) as exc:
            log.error("Edit of %s failed: %s", self.filename, exc)
            _echo(f"Error writing {self.filename}: {exc}")
            return ActionResult(f"Error writing {self.filename}: {exc}", exc)

        log.info("Wrote %s (%d chars)", self.filename, len(self.content))
        _echo(f"File {self.filename} written successfully.")
        return ActionResult(f"File {self.filename} written successfully.")


@dataclass
class PatchAction(Action):
    filename: str
    block_id: int
    content: str

    def _new_lines(self) -> List[str]:
        lines = self.content.split("\n")
        if lines and lines[-1] == "":
            lines.pop()
        return lines

    def execute(self, gating: GatingConfig, confirm: Confirm = ask_yes_no) -> ActionResult:
        question = f"Apply patch to block {self.block_id} in {self.filename}?"
        if not (gating.auto_edit or confirm(question)):
            _echo(f"Patch on {self.filename} skipped.")
            return ActionResult(f"Patch on {self.filename} skipped.")

        path = Path(self.filename)
        try:
            text, eol = _read_source(path)
        except (OSError, ValueError) as exc:
            log.error("Patch read of %s failed: %s", self.filename, exc)
            _echo(f"Error reading {self.filename}: {exc}")
            return ActionResult(f"Error reading {self.filename}: {exc}", exc)

        blocks = segment(text)
        if not 0 <= self.block_id < len(blocks):
            err = BlockNotFoundError(self.filename, self.block_id, len(blocks))
            log.warning("%s (file has %d blocks)", err, len(blocks))
            _echo(f"Error: {err}")
            return ActionResult(f"Error: {err}", err)

        if not self.content.strip():
            del blocks[self.block_id]
            log.info("Deleted block %d of %s", self.block_id, self.filename)
        else:
            # Stored verbatim; internal blank lines split the block on next read.
            blocks[self.block_id].lines = self._new_lines()
            log.info("Replaced block %d of %s", self.block_id, self.filename)

        try:
            _write_source(path, serialize(blocks), eol)
        except (OSError, ValueError) as exc:
            log.error("Patch write of %s failed: %s", self.filename, exc)
            _echo(f"Error writing {self.filename}: {exc}")
            return ActionResult(f"Error writing {self.filename}: {exc}", exc)

        _echo(f"File {self.filename} patched successfully.")
        return ActionResult(f"File {self.filename} patched successfully.")


@dataclass
class RunAction(Action):
    command: str

    def _stream(self) -> tuple[int, str]:
        """Run the command, mirroring merged stdout/stderr while capturing it."""
        captured: List[str] = []
        with subprocess.Popen(
            self.command,
            shell=True,
            executable=_SHELL,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            errors="replace",
            bufsize=1,
        ) as proc:
            for line in cast(IO[str], proc.stdout):
                sys.stdout.write(line)
                sys.stdout.flush()
                captured.append(line)
            returncode = proc.wait()
        return returncode, "".join(captured)

    def execute(self, gating: GatingConfig, confirm: Confirm = ask_yes_no) -> ActionResult:
        if not (gating.auto_run or confirm(f"Execute command: {self.command}?")):
            _echo(f"Command skipped: {self.command}")
            return ActionResult(f"Command skipped: {self.command}")

        log.info("Running command: %s", self.command)
        try:
            returncode, output = self._stream()
        except (OSError, ValueError) as exc:
            log.error("Command %r could not start: %s", self.command, exc)
            _echo(f"Command failed with error: {exc}")
            return ActionResult(f"Command failed: {self.command}\nError: {exc}", exc)

        if returncode != 0:
            err = CommandFailedError(self.command, returncode)
            log.warning("Command %r failed: %s", self.command, err)
            _echo(f"Command failed with error: {err}")
            text = f"Command failed: {self.command}\nError: {err}"
            if output:
                text += f"\nOutput:\n{output}"
            return ActionResult(text, err)

        if output:
            return ActionResult("Command output:\n" + output)
        return ActionResult(NO_OUTPUT)


@dataclass
class ReadAction(Action):
    filename: str

    def execute(self, gating: GatingConfig, confirm: Confirm = ask_yes_no) -> ActionResult:
        try:
            text, _ = _read_source(Path(self.filename))
        except (OSError, ValueError) as exc:
            log.error("Read of %s failed: %s", self.filename, exc)
            _echo(f"Error reading {self.filename}: {exc}")
            return ActionResult(f"Error reading {self.filename}: {exc}", exc)

        blocks = segment(text)
        log.info("Read %s (%d blocks)", self.filename, len(blocks))
        _echo(f"Content of {self.filename} displayed in blocks.")
        return ActionResult(_displayable(render_listing(self.filename, blocks)))


# ─────────────────────────────────────────────────────────────────────────────
# Directive → Action
# ─────────────────────────────────────────────────────────────────────────────
def from_directive(directive: Directive) -> Action:
    if isinstance(directive, EditDirective):
        return EditAction(directive.filename, directive.content)
    if isinstance(directive, PatchDirective):
        return PatchAction(directive.filename, directive.block_id, directive.content)
    if isinstance(directive, RunDirective):
        return RunAction(directive.command)
    if isinstance(directive, ReadDirective):
        return ReadAction(directive.filename)
    raise TypeError(f"Unknown directive type: {type(directive).__name__}")


__all__ = [
    "Confirm",
    "GatingConfig",
    "ActionResult",
    "Action",
    "EditAction",
    "PatchAction",
    "RunAction",
    "ReadAction",
    "ask_yes_no",
    "from_directive",
    "NO_OUTPUT",
]
