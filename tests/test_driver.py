#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
===============================================================================
Response driver / tool-call loop tests (offline)
===============================================================================

Goals
-----
* Immediate results are concatenated and sent straight back to the backend.
* Non-immediate results only land in history as "user" messages.
* The loop stops on the first reply without an immediate directive, or when
  the configured round cap is reached.
* A transport failure aborts the loop and removes the step file.
"""
from __future__ import annotations

from pathlib import Path

from arisu.actions import GatingConfig
from arisu.driver import drive, handle
from arisu.errors import TransportError

AUTO = GatingConfig(auto_edit=True, auto_run=True)


def test_handle_splits_immediate_and_deferred(workdir: Path, backend) -> None:
    client = backend()
    reply = "<RUN>echo later</RUN>\n[TOOL_CALL]<RUN>echo now</RUN>"
    feedback, has_immediate = handle(reply, client, AUTO)

    assert has_immediate is True
    assert feedback == "Command output:\nnow\n\n"
    assert client.history()[-1].role == "user"
    assert client.history()[-1].content == "Command output:\nlater\n"
    assert client.sent == []


def test_immediate_feedback_is_sent_back(workdir: Path, backend) -> None:
    client = backend(["All done."])
    result = drive(client, "[TOOL_CALL]\n<RUN>echo hi</RUN>", AUTO)

    assert client.sent == ["Command output:\nhi\n\n"]
    assert result.rounds == 1
    assert result.aborted is False
    assert result.last_reply == "All done."


def test_multiple_immediate_results_keep_order(workdir: Path, backend) -> None:
    client = backend(["ok"])
    reply = "[TOOL_CALL]<RUN>echo one</RUN> [TOOL_CALL]<RUN>echo two</RUN>"
    drive(client, reply, AUTO)
    assert client.sent == ["Command output:\none\n\nCommand output:\ntwo\n\n"]


def test_reply_without_immediate_directives_ends_the_loop(workdir: Path, backend) -> None:
    client = backend()
    result = drive(client, "<EDIT>\nout.txt\ncontent\n</EDIT>", AUTO)

    assert result.rounds == 0
    assert client.sent == []
    assert (workdir / "out.txt").read_text(encoding="utf-8") == "content"
    assert client.history()[-1].content == "File out.txt written successfully."


def test_loop_follows_chained_tool_calls(workdir: Path, backend) -> None:
    client = backend(["[TOOL_CALL]<READ>a.txt</READ>", "Finished."])
    (workdir / "a.txt").write_text("x\n", encoding="utf-8")
    result = drive(client, "[TOOL_CALL]<RUN>echo first</RUN>", AUTO)

    assert result.rounds == 2
    assert client.sent[0] == "Command output:\nfirst\n\n"
    assert client.sent[1].startswith("Content of a.txt (split into blocks):\n--- BLOCK 0 ---\nx\n")


def test_declined_immediate_action_still_reports_back(workdir: Path, backend) -> None:
    client = backend(["fine"])
    drive(client, "[TOOL_CALL]<EDIT>\nf.txt\nx\n</EDIT>", GatingConfig(), confirm=lambda q: False)
    assert client.sent == ["Write on f.txt skipped.\n"]
    assert not (workdir / "f.txt").exists()


def test_round_cap_keeps_pending_feedback_in_history(workdir: Path, backend) -> None:
    client = backend(default="[TOOL_CALL]<RUN>echo again</RUN>")
    result = drive(client, "[TOOL_CALL]<RUN>echo start</RUN>", AUTO, max_rounds=2)

    assert result.rounds == 2
    assert len(client.sent) == 2
    last = client.history()[-1]
    assert last.role == "user"
    assert last.content == "Command output:\nagain\n\n"


def test_after_round_called_for_every_reply(workdir: Path, backend) -> None:
    client = backend(["[TOOL_CALL]<RUN>true</RUN>", "done"])
    calls = []
    drive(client, "[TOOL_CALL]<RUN>true</RUN>", AUTO, after_round=lambda: calls.append(1))
    assert len(calls) == 3


def test_transport_failure_aborts_and_removes_step_file(workdir: Path, backend, capsys) -> None:
    sentinel = workdir / "AGENTSTEPS.arisu"
    sentinel.write_text("Steps:\n- a\n", encoding="utf-8")
    client = backend([TransportError("connection reset")])

    result = drive(client, "[TOOL_CALL]<RUN>echo hi</RUN>", AUTO, sentinel=sentinel)

    assert result.aborted is True
    assert isinstance(result.error, TransportError)
    assert not sentinel.exists()
    assert "Error sending tool output: connection reset" in capsys.readouterr().out
