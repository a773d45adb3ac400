#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
===============================================================================
Arisu ▸ Step‑File Agent Runner
===============================================================================

Purpose
-------
Run a short, file‑declared plan without a human in the loop. The model
writes the step file itself (usually through an EDIT directive); when the
file exists after a turn, the REPL hands control to this runner.

Step file format
----------------
    <any preamble: instructions, context …>
    Steps:
    - first instruction
    - second instruction

Everything after the literal ``Steps:`` is split into lines; each non‑blank
line is one step, sent verbatim.

Per step
--------
    send(step)      → handle once (no tool‑call loop) → agent log entry
    send("Proceed.") → handle once                    → agent log entry

The run ends, and the step file is deleted, when:
  • a reply contains ``<END>``,
  • all steps ran,
  • the 10‑step cap is hit,
  • the step file is malformed, or the backend fails.
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from arisu import get_logger
from arisu.actions import Confirm, GatingConfig, ask_yes_no
from arisu.client import ChatBackend
from arisu.driver import handle, remove_sentinel
from arisu.errors import StepFileError, TransportError
from arisu.prompts import END_MARKER, PROCEED
from arisu.transcript import append_agent_entry

log = get_logger(__name__)

STEPS_MARKER = "Steps:"
MAX_STEPS = 10


def parse_steps(text: str) -> List[str]:
    """
    Return the step instructions declared in *text*.

    Raises
    ------
    StepFileError
        If the ``Steps:`` marker is missing or no step follows it.
    """
    _, marker, tail = text.partition(STEPS_MARKER)
    if not marker:
        raise StepFileError(f"step file has no '{STEPS_MARKER}' section")
    steps = [line.strip() for line in tail.split("\n") if line.strip()]
    if not steps:
        raise StepFileError("step file declares no steps")
    return steps


@dataclass
class AgentResult:
    steps_run: int = 0
    ended: bool = False
    aborted: bool = False
    error: Optional[BaseException] = None


class StepRunner:
    """
    Drive the agent loop for one step file.

    Parameters
    ----------
    client : ChatBackend
        Conversation the steps are sent to.
    gating : GatingConfig
        Passed to every action the replies trigger.
    sentinel : Path
        The step file; its presence is the trigger and it is always removed
        when a run finishes.
    agent_log : Path
        Dedicated transcript for agent runs.
    """

    def __init__(
        self,
        client: ChatBackend,
        gating: GatingConfig,
        *,
        sentinel: Path,
        agent_log: Path,
        confirm: Confirm = ask_yes_no,
        max_steps: int = MAX_STEPS,
    ) -> None:
        self.client = client
        self.gating = gating
        self.sentinel = sentinel
        self.agent_log = agent_log
        self.confirm = confirm
        self.max_steps = max_steps

    def pending(self) -> bool:
        return self.sentinel.is_file()

    def load_steps(self) -> List[str]:
        try:
            text = self.sentinel.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise StepFileError(f"cannot read {self.sentinel}: {exc}") from exc
        return parse_steps(text)

    def _exchange(self, step_no: int, text: str) -> str:
        reply = self.client.send_message(text)
        feedback, has_immediate = handle(reply, self.client, self.gating, self.confirm)
        if has_immediate:
            # No automatic loop here; keep the results for the next exchange.
            self.client.add_message("user", feedback)
        append_agent_entry(self.agent_log, step_no, text, reply, feedback)
        return reply

    def run(self) -> AgentResult:
        result = AgentResult()
        try:
            steps = self.load_steps()
        except StepFileError as exc:
            log.error("Agent run aborted: %s", exc)
            print(f"Agent mode aborted: {exc}", flush=True)
            remove_sentinel(self.sentinel)
            result.aborted, result.error = True, exc
            return result

        log.info("Agent run started: %d step(s) from %s", len(steps), self.sentinel)
        print(f"Agent mode: {len(steps)} step(s) found in {self.sentinel}.", flush=True)
        try:
            for step_no, step in enumerate(steps, 1):
                if step_no > self.max_steps:
                    log.warning("Agent run hit the %d-step cap", self.max_steps)
                    print(f"Agent mode stopped: more than {self.max_steps} steps.", flush=True)
                    result.aborted = True
                    break

                print(f"Agent step {step_no}: {step}", flush=True)
                result.steps_run = step_no
                if END_MARKER in self._exchange(step_no, step):
                    result.ended = True
                    break
                if END_MARKER in self._exchange(step_no, PROCEED):
                    result.ended = True
                    break
        except TransportError as exc:
            log.error("Agent run aborted at step %d: %s", result.steps_run, exc)
            print(f"Agent mode aborted: {exc}", flush=True)
            result.aborted, result.error = True, exc
        finally:
            remove_sentinel(self.sentinel)

        log.info(
            "Agent run finished | steps=%d | ended=%s | aborted=%s",
            result.steps_run,
            result.ended,
            result.aborted,
        )
        return result


__all__ = ["StepRunner", "AgentResult", "parse_steps", "STEPS_MARKER", "MAX_STEPS"]
