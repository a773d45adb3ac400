#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
===============================================================================
Arisu ▸ Conversation & Agent Transcripts
===============================================================================

Two plain‑text, append‑only logs:

* conversation_<YYYYmmdd_HHMMSS>.log – one line per history message,
  written incrementally with a high‑water mark so nothing is logged twice.
* the agent log – one entry per step of the step‑file runner.
"""
from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Sequence

from arisu import get_logger
from arisu.client import Message

log = get_logger(__name__)

_TS_FMT = "%Y-%m-%d %H:%M:%S"


def session_log_path(log_dir: Path, now: datetime | None = None, prefix: str = "conversation") -> Path:
    stamp = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
    return log_dir / f"{prefix}_{stamp}.log"


def append_history(log_file: Path, history: Sequence[Message], start: int = 0) -> int:
    """
    Append messages ``history[start:]`` to *log_file*.

    Returns the new high‑water mark (``len(history)``). Write failures are
    logged and leave the mark unchanged so the next call retries.
    """
    if start >= len(history):
        return len(history)
    stamp = datetime.now().strftime(_TS_FMT)
    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        with log_file.open("a", encoding="utf-8") as fh:
            for msg in history[start:]:
                fh.write(f"[{stamp}] {msg.role}: {msg.content}\n")
    except OSError as exc:
        log.warning("Could not append conversation log %s: %s", log_file, exc)
        return start
    return len(history)


def append_agent_entry(
    log_file: Path,
    step_no: int,
    instruction: str,
    reply: str,
    feedback: str = "",
) -> None:
    """Append one exchange of the agent runner to *log_file*."""
    stamp = datetime.now().strftime(_TS_FMT)
    lines = [f"[{stamp}] Step {step_no}: {instruction}", f"Response:\n{reply.rstrip()}"]
    if feedback.strip():
        lines.append(f"Tool feedback:\n{feedback.rstrip()}")
    entry = "\n".join(lines) + "\n\n"
    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        with log_file.open("a", encoding="utf-8") as fh:
            fh.write(entry)
    except OSError as exc:
        log.warning("Could not append agent log %s: %s", log_file, exc)


__all__ = ["session_log_path", "append_history", "append_agent_entry"]
