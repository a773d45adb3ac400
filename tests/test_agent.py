#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
===============================================================================
Step-file agent runner tests (offline)
===============================================================================

Goals
-----
* Each step is sent verbatim, followed by an automatic "Proceed.".
* `<END>` in either reply stops the run.
* At most 10 steps run; the step file is always removed afterwards.
* A malformed step file or a backend failure aborts cleanly.
"""
from __future__ import annotations

from pathlib import Path

import pytest

from arisu.actions import GatingConfig
from arisu.agent import MAX_STEPS, StepRunner, parse_steps
from arisu.errors import StepFileError, TransportError
from arisu.prompts import PROCEED

AUTO = GatingConfig(auto_edit=True, auto_run=True)


def _runner(workdir: Path, client, body: str) -> StepRunner:
    sentinel = workdir / "AGENTSTEPS.arisu"
    sentinel.write_text(body, encoding="utf-8")
    return StepRunner(
        client,
        AUTO,
        sentinel=sentinel,
        agent_log=workdir / "logs" / "agent.log",
        confirm=lambda q: pytest.fail(f"unexpected confirm: {q}"),
    )


# ───────────────────────────── parse_steps ───────────────────────────────────
def test_parse_steps_ignores_preamble_and_blank_lines() -> None:
    text = "Instructions:\nfollow the plan\nSteps:\n- first\n\n   \n- second\n"
    assert parse_steps(text) == ["- first", "- second"]


def test_parse_steps_without_marker() -> None:
    with pytest.raises(StepFileError):
        parse_steps("- first\n- second\n")


def test_parse_steps_without_steps() -> None:
    with pytest.raises(StepFileError):
        parse_steps("Instructions:\nSteps:\n\n  \n")


# ───────────────────────────── runner ────────────────────────────────────────
def test_each_step_is_followed_by_proceed(workdir: Path, backend) -> None:
    client = backend(default="ok")
    runner = _runner(workdir, client, "Steps:\n- say hello\n- say bye\n")
    assert runner.pending()

    result = runner.run()

    assert client.sent == ["- say hello", PROCEED, "- say bye", PROCEED]
    assert result.steps_run == 2
    assert result.ended is False and result.aborted is False
    assert not runner.pending()


def test_end_marker_in_step_reply_stops_immediately(workdir: Path, backend) -> None:
    client = backend(["All finished <END>"], default="ok")
    runner = _runner(workdir, client, "Steps:\n- one\n- two\n")

    result = runner.run()

    assert client.sent == ["- one"]
    assert result.ended is True
    assert not runner.sentinel.exists()


def test_end_marker_in_proceed_reply_stops(workdir: Path, backend) -> None:
    client = backend(["working", "<END>"], default="ok")
    result = _runner(workdir, client, "Steps:\n- one\n- two\n").run()

    assert client.sent == ["- one", PROCEED]
    assert result.ended is True
    assert result.steps_run == 1


def test_step_cap_stops_after_ten_steps(workdir: Path, backend) -> None:
    steps = "\n".join(f"- step {i}" for i in range(1, 12))
    client = backend(default="ok")
    runner = _runner(workdir, client, f"Steps:\n{steps}\n")

    result = runner.run()

    assert result.steps_run == MAX_STEPS == 10
    assert result.aborted is True
    assert len(client.sent) == 2 * MAX_STEPS
    assert "- step 11" not in client.sent
    assert not runner.sentinel.exists()


def test_malformed_step_file_aborts_and_is_removed(workdir: Path, backend) -> None:
    client = backend(default="ok")
    runner = _runner(workdir, client, "no marker here\n- a\n")

    result = runner.run()

    assert result.aborted is True
    assert isinstance(result.error, StepFileError)
    assert client.sent == []
    assert not runner.sentinel.exists()


def test_transport_failure_aborts_and_removes_step_file(workdir: Path, backend) -> None:
    client = backend(["fine", TransportError("timeout")])
    runner = _runner(workdir, client, "Steps:\n- one\n- two\n")

    result = runner.run()

    assert result.aborted is True
    assert isinstance(result.error, TransportError)
    assert not runner.sentinel.exists()


def test_directives_in_replies_are_executed(workdir: Path, backend) -> None:
    client = backend(["<EDIT>\nhello.txt\nHello\n</EDIT>", "[TOOL_CALL]<RUN>echo tool</RUN>"], default="ok")
    _runner(workdir, client, "Steps:\n- create the file\n").run()

    assert (workdir / "hello.txt").read_text(encoding="utf-8") == "Hello"
    contents = [m.content for m in client.history() if m.role == "user"]
    assert "File hello.txt written successfully." in contents
    # Immediate feedback waits in history; it is not auto-sent in agent mode.
    assert "Command output:\ntool\n\n" in contents
    assert client.sent == ["- create the file", PROCEED]


def test_agent_log_records_every_exchange(workdir: Path, backend) -> None:
    client = backend(["first reply", "second reply"], default="ok")
    runner = _runner(workdir, client, "Steps:\n- only step\n")
    runner.run()

    text = runner.agent_log.read_text(encoding="utf-8")
    assert "Step 1: - only step\nResponse:\nfirst reply\n" in text
    assert f"Step 1: {PROCEED}\nResponse:\nsecond reply\n" in text
