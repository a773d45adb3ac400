#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Offline unit tests for the chat backend client (`arisu.client`).

Goals
-----
• Model names route to the right provider / API model id.
• `send_message` appends user + assistant turns and passes the full history.
• Streaming deltas are assembled into one reply.
• SDK failures surface as TransportError and never as raw SDK exceptions.

A fake SDK exposing `chat.completions.create(...)` is injected; no network.
"""
from __future__ import annotations

import pytest

from arisu.client import OpenAIChatClient, resolve_model
from arisu.errors import ConfigError, TransportError

from conftest import FakeSDK, _Obj, completion, stream_chunks


@pytest.mark.parametrize(
    "selected, provider, api_model",
    [
        ("gemini", "gemini", "gemini-2.0-flash"),
        ("gemini-2.5-pro", "gemini", "gemini-2.5-pro"),
        ("grok", "grok", "grok-2-latest"),
        ("grok-3", "grok", "grok-3"),
        ("gpt-4.1", "openai", "gpt-4.1"),
        ("openrouter-anthropic/claude-3.5-sonnet", "openrouter", "anthropic/claude-3.5-sonnet"),
    ],
)
def test_resolve_model(selected: str, provider: str, api_model: str) -> None:
    prov, model = resolve_model(selected)
    assert prov.name == provider
    assert model == api_model


def test_resolve_unknown_model() -> None:
    with pytest.raises(ConfigError):
        resolve_model("definitely-not-a-model")


def test_history_starts_with_system_prompt() -> None:
    client = OpenAIChatClient(model="gemini", sdk=FakeSDK())
    first = client.history()[0]
    assert first.role == "system"
    assert "<PATCH>" in first.content and "[TOOL_CALL]" in first.content


def test_send_message_non_streaming(capsys) -> None:
    sdk = FakeSDK(result=completion("Hello there"))
    client = OpenAIChatClient(model="gpt-4.1", stream=False, sdk=sdk)

    reply = client.send_message("hi")

    assert reply == "Hello there"
    assert [m.role for m in client.history()] == ["system", "user", "assistant"]
    call = sdk.chat.completions.calls[0]
    assert call["model"] == "gpt-4.1"
    assert call["stream"] is False
    assert call["messages"][-1] == {"role": "user", "content": "hi"}
    assert "Hello there" in capsys.readouterr().out


def test_send_message_streaming_assembles_deltas(capsys) -> None:
    sdk = FakeSDK(result=stream_chunks("Hel", None, "lo", "!"))
    client = OpenAIChatClient(model="gemini", stream=True, sdk=sdk)

    reply = client.send_message("hi")

    assert reply == "Hello!\n"
    assert client.history()[-1].content == "Hello!\n"
    assert sdk.chat.completions.calls[0]["model"] == "gemini-2.0-flash"
    assert "Hello!" in capsys.readouterr().out


def test_stream_chunks_without_choices_are_skipped() -> None:
    chunks = [_Obj(choices=[]), *stream_chunks("ok")]
    client = OpenAIChatClient(model="gemini", sdk=FakeSDK(result=chunks))
    assert client.send_message("x") == "ok\n"


def test_sdk_error_becomes_transport_error() -> None:
    client = OpenAIChatClient(model="gemini", sdk=FakeSDK(exc=RuntimeError("503 upstream")))
    with pytest.raises(TransportError, match="503 upstream"):
        client.send_message("hi")
    # The user turn is kept; no assistant turn is recorded.
    assert [m.role for m in client.history()] == ["system", "user"]


def test_malformed_response_is_transport_error() -> None:
    client = OpenAIChatClient(model="gpt-4o", stream=False, sdk=FakeSDK(result=_Obj(choices=[])))
    with pytest.raises(TransportError):
        client.send_message("hi")


def test_missing_api_key_is_config_error(monkeypatch) -> None:
    monkeypatch.delenv("XAI_API_KEY", raising=False)
    client = OpenAIChatClient(model="grok")
    with pytest.raises(ConfigError, match="XAI_API_KEY"):
        client.send_message("hi")
    # The failed send leaves the conversation untouched.
    assert [m.role for m in client.history()] == ["system"]


def test_connect_reports_missing_key_without_sending(monkeypatch) -> None:
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    client = OpenAIChatClient(model="gemini")
    with pytest.raises(ConfigError, match="GEMINI_API_KEY"):
        client.connect()


def test_connect_returns_injected_sdk() -> None:
    sdk = FakeSDK()
    assert OpenAIChatClient(model="gemini", sdk=sdk).connect() is sdk
