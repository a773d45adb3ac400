#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
===============================================================================
Arisu ▸ Block Segmenter
===============================================================================

Files are addressed by **blocks**: maximal runs of non‑blank lines. Blank
(whitespace‑only) lines are separators and are dropped. Ids are assigned by
position, 0..n‑1, every time a file is segmented; they are never cached.

    segment("a\\n\\nb\\nc\\n\\nd")
    → [Block(0, ["a"]), Block(1, ["b", "c"]), Block(2, ["d"])]

`serialize` is the inverse up to separator normalisation: any run of blank
lines comes back as exactly one, so segment(serialize(segment(x))) equals
segment(x).

A block's lines may hold an internal blank line after a patch (content is
stored verbatim). That block splits in two only when the file is segmented
again.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Sequence


@dataclass
class Block:
    id: int
    lines: List[str] = field(default_factory=list)

    @property
    def text(self) -> str:
        return "\n".join(self.lines)


def _is_blank(line: str) -> bool:
    return not line.strip()


def segment(text: str) -> List[Block]:
    """Split *text* into ordered blocks of consecutive non‑blank lines."""
    blocks: List[Block] = []
    current: List[str] = []
    for line in text.split("\n"):
        if _is_blank(line):
            if current:
                blocks.append(Block(id=len(blocks), lines=current))
                current = []
        else:
            current.append(line)
    if current:
        blocks.append(Block(id=len(blocks), lines=current))
    return blocks


def serialize(blocks: Sequence[Block]) -> str:
    """
    Join blocks back into file text.

    Every line is newline‑terminated and consecutive blocks are separated by
    one blank line, so a non‑empty result ends with a single newline.
    """
    chunks: List[str] = []
    for i, block in enumerate(blocks):
        chunks.extend(line + "\n" for line in block.lines)
        if i < len(blocks) - 1:
            chunks.append("\n")
    return "".join(chunks)


def render_listing(filename: str, blocks: Sequence[Block]) -> str:
    """Labeled listing returned to the model by a Read, one header per block."""
    out = [f"Content of {filename} (split into blocks):\n"]
    for block in blocks:
        out.append(f"--- BLOCK {block.id} ---\n")
        out.extend(line + "\n" for line in block.lines)
    return "".join(out)


__all__ = ["Block", "segment", "serialize", "render_listing"]
