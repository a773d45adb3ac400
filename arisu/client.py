#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
===============================================================================
Arisu ▸ Chat Backend Client (OpenAI‑compatible)
===============================================================================

Purpose
-------
The core engine only needs three things from a backend:

    send_message(text) -> str          (raises TransportError)
    add_message(role, text) -> None
    history() -> list[Message]

`ChatBackend` spells that contract out as a Protocol; `OpenAIChatClient`
implements it on top of the official `openai` SDK. Every supported provider
exposes an OpenAI‑compatible Chat Completions endpoint, so routing is only a
matter of picking the base URL and API key from the model name:

| model                         | provider    | key env              |
|-------------------------------|-------------|----------------------|
| gpt‑4.1*, gpt‑4o*, o3, …      | openai      | OPENAI_API_KEY       |
| gemini, gemini‑2.x‑…          | gemini      | GEMINI_API_KEY       |
| grok‑*                        | grok        | XAI_API_KEY          |
| openrouter‑<model>            | openrouter  | OPENROUTER_API_KEY   |

Design notes
------------
• History is append‑only and starts with the system prompt.
• When streaming, deltas are written to stdout as they arrive; the caller
  still receives the fully assembled reply.
• Accepts an injected `sdk` object (used by offline tests); otherwise the
  OpenAI client is instantiated lazily on first use.
"""
from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

from arisu import get_logger
from arisu.errors import ConfigError, TransportError
from arisu.prompts import system_prompt

log = get_logger(__name__)

# ─────────────────────────────────────────────────────────────────────────────
# Provider routing
# ─────────────────────────────────────────────────────────────────────────────
OPENAI_MODELS = ("gpt-4.1-mini", "gpt-4.1", "gpt-4o", "gpt-4o-mini", "o3", "gpt-3.5-turbo")
GEMINI_MODELS = ("gemini", "gemini-2.0-flash", "gemini-2.5-flash", "gemini-2.5-pro")

MODEL_ALIASES: Dict[str, str] = {
    "gemini": "gemini-2.0-flash",
    "grok": "grok-2-latest",
}


@dataclass(frozen=True)
class Provider:
    name: str
    base_url: Optional[str]
    key_env: str


PROVIDERS: Dict[str, Provider] = {
    "openai": Provider("openai", os.getenv("OPENAI_BASE_URL") or None, "OPENAI_API_KEY"),
    "gemini": Provider(
        "gemini", "https://generativelanguage.googleapis.com/v1beta/openai/", "GEMINI_API_KEY"
    ),
    "grok": Provider("grok", "https://api.x.ai/v1", "XAI_API_KEY"),
    "openrouter": Provider("openrouter", "https://openrouter.ai/api/v1", "OPENROUTER_API_KEY"),
}


def resolve_model(selected: str) -> tuple[Provider, str]:
    """
    Map a configured model name to (provider, model id sent to the API).

    Raises
    ------
    ConfigError
        If the name matches no known provider.
    """
    name = (selected or "").strip()
    if name in GEMINI_MODELS:
        return PROVIDERS["gemini"], MODEL_ALIASES.get(name, name)
    if name == "grok" or name.startswith("grok-"):
        return PROVIDERS["grok"], MODEL_ALIASES.get(name, name)
    if name in OPENAI_MODELS:
        return PROVIDERS["openai"], name
    if name.startswith("openrouter-"):
        return PROVIDERS["openrouter"], name[len("openrouter-"):]
    raise ConfigError(f"Invalid selected model: {selected!r}")


# ─────────────────────────────────────────────────────────────────────────────
# Contract
# ─────────────────────────────────────────────────────────────────────────────
@dataclass
class Message:
    role: str
    content: str


class ChatBackend(Protocol):
    def send_message(self, text: str) -> str: ...

    def add_message(self, role: str, text: str) -> None: ...

    def history(self) -> List[Message]: ...


# ─────────────────────────────────────────────────────────────────────────────
# OpenAI SDK implementation
# ─────────────────────────────────────────────────────────────────────────────
@dataclass
class OpenAIChatClient:
    """
    Conversation with one OpenAI‑compatible endpoint.

    Attributes
    ----------
    model : str
        Configured model name (aliases and provider prefixes allowed).
    timeout_s : int
        Per‑request timeout in seconds.
    stream : bool
        Mirror reply deltas to stdout while they arrive.
    sdk : Any | None
        Pre‑built client exposing `chat.completions.create` (tests).
    """

    model: str
    timeout_s: int = 120
    stream: bool = True
    sdk: Any | None = None
    messages: List[Message] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.provider, self.api_model = resolve_model(self.model)
        if not self.messages:
            self.messages = [Message("system", system_prompt())]
        log.info(
            "Chat client initialised | provider=%s | model=%s | stream=%s",
            self.provider.name,
            self.api_model,
            self.stream,
        )

    # --- SDK bootstrap ----------------------------------------------------- #
    def connect(self) -> Any:
        """Build the SDK client once; raises ConfigError when the API key is missing."""
        if self.sdk is not None:
            return self.sdk
        api_key = os.getenv(self.provider.key_env)
        if not api_key:
            raise ConfigError(
                f"{self.provider.key_env} is not set; export it to use {self.provider.name} models."
            )
        from openai import OpenAI

        self.sdk = OpenAI(api_key=api_key, base_url=self.provider.base_url, timeout=self.timeout_s)
        return self.sdk

    # --- Contract ---------------------------------------------------------- #
    def add_message(self, role: str, text: str) -> None:
        self.messages.append(Message(role, text))

    def history(self) -> List[Message]:
        return list(self.messages)

    def send_message(self, text: str) -> str:
        sdk = self.connect()
        self.add_message("user", text)
        payload = [{"role": m.role, "content": m.content} for m in self.messages]

        try:
            resp = sdk.chat.completions.create(
                model=self.api_model,
                messages=payload,
                stream=self.stream,
            )
            reply = self._collect_stream(resp) if self.stream else self._collect(resp)
        except TransportError:
            raise
        except Exception as exc:
            log.error("Backend request failed (%s): %s", self.provider.name, exc)
            raise TransportError(f"{self.provider.name} request failed: {exc}") from exc

        self.add_message("assistant", reply)
        log.debug("Assistant reply: %d chars", len(reply))
        return reply

    # --- Response decoding ------------------------------------------------- #
    @staticmethod
    def _collect(resp: Any) -> str:
        try:
            content = resp.choices[0].message.content or ""
        except (AttributeError, IndexError, TypeError) as exc:
            raise TransportError(f"Malformed API response: {exc}") from exc
        print(content, flush=True)
        return content

    @staticmethod
    def _collect_stream(chunks: Any) -> str:
        parts: List[str] = []
        for chunk in chunks:
            choices = getattr(chunk, "choices", None) or []
            if not choices:
                continue
            delta = getattr(choices[0], "delta", None)
            piece = getattr(delta, "content", None) if delta is not None else None
            if piece:
                sys.stdout.write(piece)
                sys.stdout.flush()
                parts.append(piece)
        sys.stdout.write("\n")
        sys.stdout.flush()
        return "".join(parts) + "\n"


__all__ = [
    "Message",
    "ChatBackend",
    "OpenAIChatClient",
    "Provider",
    "PROVIDERS",
    "resolve_model",
]
