#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
===============================================================================
Arisu ▸ Directive Scanner
===============================================================================

Purpose
-------
Pull typed instructions out of free‑form model output. There is no grammar:
four fixed tag pairs are located with plain substring search and everything
between them is treated as the payload.

    <RUN>\\nls -la\\n</RUN>
    <READ>\\nsrc/app.py\\n</READ>
    <EDIT>\\nsrc/app.py\\n<full file content>\\n</EDIT>
    <PATCH>\\nsrc/app.py\\n3\\n<new block content>\\n</PATCH>

A directive whose opening tag is preceded (ignoring whitespace) by the
literal ``[TOOL_CALL]`` is *immediate*: its result is sent straight back to
the model instead of waiting for the next human turn.

Scanning rules
--------------
* The earliest opening tag from the cursor wins.
* Its closing tag is searched after the opening tag. When missing, only that
  opening tag is discarded; scanning resumes right after it.
* Payloads that do not parse (Edit without a content line, Patch with a
  non‑integer block id, empty Run/Read) are dropped without raising.
* The result preserves response order; that order is the execution order.
"""
from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from arisu import get_logger

log = get_logger(__name__)

TOOL_CALL_MARKER = "[TOOL_CALL]"

_BLOCK_ID_RE = re.compile(r"[+-]?[0-9]+")


class Kind(str, enum.Enum):
    EDIT = "EDIT"
    RUN = "RUN"
    READ = "READ"
    PATCH = "PATCH"

    @property
    def open_tag(self) -> str:
        return f"<{self.value}>"

    @property
    def close_tag(self) -> str:
        return f"</{self.value}>"


# ─────────────────────────────────────────────────────────────────────────────
# Directive types (closed family, one dataclass per kind)
# ─────────────────────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class Directive:
    """
    Common header of every directive.

    ``span`` is (start of opening tag, end of closing tag) in the scanned text.
    """

    span: Tuple[int, int]
    is_immediate: bool

    kind = None  # type: Optional[Kind]


@dataclass(frozen=True)
class EditDirective(Directive):
    filename: str = ""
    content: str = ""

    kind = Kind.EDIT


@dataclass(frozen=True)
class RunDirective(Directive):
    command: str = ""

    kind = Kind.RUN


@dataclass(frozen=True)
class ReadDirective(Directive):
    filename: str = ""

    kind = Kind.READ


@dataclass(frozen=True)
class PatchDirective(Directive):
    filename: str = ""
    block_id: int = 0
    content: str = ""

    kind = Kind.PATCH


# ─────────────────────────────────────────────────────────────────────────────
# Payload parsers
# ─────────────────────────────────────────────────────────────────────────────
def _parse(kind: Kind, raw: str, span: Tuple[int, int], immediate: bool) -> Optional[Directive]:
    """Turn a raw payload into a directive, or None when it does not parse."""
    payload = raw.strip()

    if kind is Kind.EDIT:
        parts = payload.split("\n", 1)
        if len(parts) < 2:
            return None
        return EditDirective(span, immediate, filename=parts[0].strip(), content=parts[1])

    if kind is Kind.RUN:
        if not payload:
            return None
        return RunDirective(span, immediate, command=payload)

    if kind is Kind.READ:
        if not payload:
            return None
        return ReadDirective(span, immediate, filename=payload)

    # PATCH: filename, block id, optional content (missing → delete block)
    parts = payload.split("\n", 2)
    if len(parts) < 2:
        return None
    id_text = parts[1].strip()
    if not _BLOCK_ID_RE.fullmatch(id_text):
        return None
    content = parts[2] if len(parts) == 3 else ""
    return PatchDirective(
        span, immediate, filename=parts[0].strip(), block_id=int(id_text), content=content
    )


def _nearest_open(text: str, pos: int) -> Optional[Tuple[int, Kind]]:
    best: Optional[Tuple[int, Kind]] = None
    for kind in Kind:
        idx = text.find(kind.open_tag, pos)
        if idx != -1 and (best is None or idx < best[0]):
            best = (idx, kind)
    return best


# ─────────────────────────────────────────────────────────────────────────────
# Public API
# ─────────────────────────────────────────────────────────────────────────────
def extract(text: str) -> List[Directive]:
    """
    Scan *text* once, left to right, and return the directives it contains.

    Never raises on malformed input; unparseable regions are skipped.
    """
    directives: List[Directive] = []
    pos = 0

    while True:
        found = _nearest_open(text, pos)
        if found is None:
            break
        start, kind = found
        payload_start = start + len(kind.open_tag)

        end = text.find(kind.close_tag, payload_start)
        if end == -1:
            log.debug("Unterminated %s at offset %d – skipping tag", kind.open_tag, start)
            pos = payload_start
            continue

        immediate = text[pos:start].strip().endswith(TOOL_CALL_MARKER)
        stop = end + len(kind.close_tag)
        directive = _parse(kind, text[payload_start:end], (start, stop), immediate)
        if directive is None:
            log.debug("Dropped malformed %s directive at offset %d", kind.value, start)
        else:
            directives.append(directive)
        pos = stop

    log.debug("Extracted %d directive(s)", len(directives))
    return directives


__all__ = [
    "TOOL_CALL_MARKER",
    "Kind",
    "Directive",
    "EditDirective",
    "RunDirective",
    "ReadDirective",
    "PatchDirective",
    "extract",
]
