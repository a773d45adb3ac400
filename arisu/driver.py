#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
===============================================================================
Arisu ▸ Response Driver & Tool‑Call Loop
===============================================================================

Purpose
-------
Turn one backend reply into local effects, then decide who speaks next.

    handle(reply) ─┬─ immediate results  → feedback text (sent back at once)
                   └─ other results      → appended to history as "user"
                                           (seen on the next human turn)

    drive(reply):  handle → feedback? → send_message(feedback) → handle → …
                   until a reply carries no immediate directive.

Behaviour
---------
• Directives run strictly in response order, one at a time.
• The loop has no cap by default; `max_rounds` bounds the number of automatic
  sends when configured. When the cap stops the loop, the pending feedback is
  kept in history so it is not lost.
• A transport failure while sending feedback aborts the loop and removes the
  sentinel step file so a broken automation is not relaunched.
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from arisu import get_logger
from arisu.actions import Confirm, GatingConfig, ask_yes_no, from_directive
from arisu.client import ChatBackend
from arisu.directives import extract
from arisu.errors import TransportError

log = get_logger(__name__)


@dataclass
class DriveResult:
    rounds: int = 0
    aborted: bool = False
    error: Optional[BaseException] = None
    last_reply: str = ""


def handle(
    reply: str,
    client: ChatBackend,
    gating: GatingConfig,
    confirm: Confirm = ask_yes_no,
) -> Tuple[str, bool]:
    """
    Extract and execute every directive in *reply*.

    Returns (feedback_text, has_immediate). Feedback holds the newline‑
    terminated results of the immediate directives, in order.
    """
    directives = extract(reply)
    if directives:
        log.info("Executing %d directive(s)", len(directives))

    feedback: List[str] = []
    has_immediate = False
    for directive in directives:
        result = from_directive(directive).execute(gating, confirm)
        if not result.ok:
            log.debug("%s directive reported: %s", directive.kind.value, result.error)
        if directive.is_immediate:
            has_immediate = True
            feedback.append(result.output + "\n")
        else:
            client.add_message("user", result.output)
    return "".join(feedback), has_immediate


def remove_sentinel(sentinel: Optional[Path]) -> None:
    if sentinel is None:
        return
    try:
        sentinel.unlink(missing_ok=True)
    except OSError as exc:
        log.warning("Could not remove step file %s: %s", sentinel, exc)
    else:
        log.debug("Removed step file %s", sentinel)


def drive(
    client: ChatBackend,
    reply: str,
    gating: GatingConfig,
    *,
    confirm: Confirm = ask_yes_no,
    max_rounds: Optional[int] = None,
    sentinel: Optional[Path] = None,
    after_round: Optional[Callable[[], None]] = None,
) -> DriveResult:
    """
    Run the tool‑call loop starting from *reply*.

    Parameters
    ----------
    max_rounds : int | None
        Maximum number of feedback messages sent automatically; None = no cap.
    sentinel : Path | None
        Step file to delete if the loop aborts on a transport failure.
    after_round : callable | None
        Invoked after every handled reply (the REPL appends its transcript).
    """
    outcome = DriveResult(last_reply=reply)
    while True:
        feedback, has_immediate = handle(reply, client, gating, confirm)
        if after_round is not None:
            after_round()
        if not has_immediate:
            return outcome

        if max_rounds is not None and outcome.rounds >= max_rounds:
            log.warning("Tool-call loop stopped after %d automatic round(s)", outcome.rounds)
            client.add_message("user", feedback)
            return outcome

        outcome.rounds += 1
        log.info("Tool-call round %d: sending %d chars of feedback", outcome.rounds, len(feedback))
        try:
            reply = client.send_message(feedback)
        except TransportError as exc:
            log.error("Error sending tool output: %s", exc)
            print(f"Error sending tool output: {exc}", flush=True)
            remove_sentinel(sentinel)
            outcome.aborted = True
            outcome.error = exc
            return outcome
        outcome.last_reply = reply


__all__ = ["handle", "drive", "DriveResult", "remove_sentinel"]
