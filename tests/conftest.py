#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Shared offline fakes for the Arisu test-suite.

* `FakeBackend` implements the chat contract (send_message / add_message /
  history) from a scripted list of replies; an exception instance in the
  list is raised instead of returned.
* `_Obj` mimics SDK response objects (choices / message / delta).
"""
from __future__ import annotations

from typing import Any, List, Optional, Sequence, Union

import pytest

from arisu.client import Message
from arisu.errors import TransportError


class _Obj:
    """Simple attribute container to mimic SDK objects."""

    def __init__(self, **kw):
        for k, v in kw.items():
            setattr(self, k, v)


class FakeBackend:
    def __init__(self, replies: Sequence[Union[str, BaseException]] = (), default: Optional[str] = None):
        self.replies: List[Union[str, BaseException]] = list(replies)
        self.default = default
        self.sent: List[str] = []
        self.messages: List[Message] = [Message("system", "test system prompt")]

    def send_message(self, text: str) -> str:
        self.sent.append(text)
        self.messages.append(Message("user", text))
        if self.replies:
            reply = self.replies.pop(0)
        elif self.default is not None:
            reply = self.default
        else:
            raise TransportError("no scripted reply left")
        if isinstance(reply, BaseException):
            raise reply
        self.messages.append(Message("assistant", reply))
        return reply

    def add_message(self, role: str, text: str) -> None:
        self.messages.append(Message(role, text))

    def history(self) -> List[Message]:
        return list(self.messages)


class FakeCompletions:
    def __init__(self, result: Any = None, exc: Optional[BaseException] = None):
        self.result = result
        self.exc = exc
        self.calls: List[dict] = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.exc is not None:
            raise self.exc
        return self.result


class FakeSDK:
    """Minimal stand-in for `openai.OpenAI`: sdk.chat.completions.create(...)."""

    def __init__(self, result: Any = None, exc: Optional[BaseException] = None):
        self.chat = _Obj(completions=FakeCompletions(result, exc))


def completion(content: Optional[str]) -> _Obj:
    return _Obj(choices=[_Obj(message=_Obj(role="assistant", content=content))])


def stream_chunks(*pieces: Optional[str]) -> List[_Obj]:
    return [_Obj(choices=[_Obj(delta=_Obj(content=p))]) for p in pieces]


@pytest.fixture
def backend():
    """Factory: backend(["reply", ...], default=None) -> FakeBackend."""
    return FakeBackend


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    """Run the test inside an empty temporary directory."""
    monkeypatch.chdir(tmp_path)
    return tmp_path
