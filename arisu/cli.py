#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
===============================================================================
Arisu ▸ Command Line Interface & REPL
===============================================================================

Subcommands
-----------
• chat        – interactive REPL (default when no command is given)
• ask         – one‑shot turn: send a prompt, run its directives, exit
• apply       – run the directives of a saved reply (no backend needed)
• blocks      – print a file split into numbered blocks
• config      – show or persist settings
• version     – print package version

Global flags
------------
• --version   – print package version (equivalent to the `version` subcommand)

Examples
--------
  # 1) Start the REPL with a specific model, auto‑approving edits
  arisu chat --model gpt-4.1 --auto-edit true

  # 2) One‑shot question with a file inlined
  arisu ask "explain @arisu/blocks.py"

  # 3) Replay a reply saved to disk
  arisu apply ./reply.txt

  # 4) Persist the default model
  arisu config --set-model grok
"""
from __future__ import annotations

import argparse
import json
import sys
from dataclasses import replace
from pathlib import Path
from typing import Callable, Optional

from arisu import get_logger, get_version
from arisu.actions import Confirm, ask_yes_no, from_directive
from arisu.agent import StepRunner
from arisu.blocks import render_listing, segment
from arisu.client import ChatBackend, OpenAIChatClient, resolve_model
from arisu.directives import extract
from arisu.driver import DriveResult, drive
from arisu.errors import ArisuError, ConfigError, TransportError
from arisu.logger import ensure_log_dir
from arisu.settings import Settings, load_settings, parse_bool, save_settings
from arisu.transcript import append_history, session_log_path

log = get_logger(__name__)

PROMPT = "λ "


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────

def expand_mentions(text: str) -> str:
    """
    Inline every readable ``@path`` word of *text* as a FILE block.

    Unreadable paths are left untouched.
    """
    expanded = text
    for word in text.split():
        if not word.startswith("@") or len(word) == 1:
            continue
        name = word[1:]
        try:
            content = Path(name).read_text(encoding="utf-8")
        except (OSError, ValueError):
            log.debug("Mention %s is not a readable file; left as is", word)
            continue
        expanded = expanded.replace(word, f'\n<FILE name="{name}">\n{content}\n</FILE>\n', 1)
    return expanded


def _bool_arg(value: str) -> bool:
    try:
        return parse_bool(value)
    except ConfigError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def _effective_settings(args: argparse.Namespace) -> Settings:
    """Loaded settings with the session‑only CLI overrides applied."""
    settings = load_settings()
    changes = {}
    if getattr(args, "model", None):
        changes["selected_model"] = args.model
    if getattr(args, "auto_edit", None) is not None:
        changes["auto_edit"] = args.auto_edit
    if getattr(args, "auto_run", None) is not None:
        changes["auto_run"] = args.auto_run
    return replace(settings, **changes)


def _build_client(settings: Settings) -> OpenAIChatClient:
    client = OpenAIChatClient(
        model=settings.selected_model,
        timeout_s=settings.api_timeout,
        stream=settings.stream,
    )
    # Fail before the first prompt when the provider key is missing.
    client.connect()
    return client


# ─────────────────────────────────────────────────────────────────────────────
# Session (one conversation + its transcripts)
# ─────────────────────────────────────────────────────────────────────────────

class Session:
    """
    One conversation with the backend.

    Each `turn` sends the user text, runs the tool‑call loop on the reply,
    appends new history to the conversation log and finally hands over to
    the step‑file runner when the model left a step file behind.
    """

    def __init__(
        self,
        client: ChatBackend,
        settings: Settings,
        *,
        log_dir: Path,
        confirm: Confirm = ask_yes_no,
    ) -> None:
        self.client = client
        self.settings = settings
        self.confirm = confirm
        self.sentinel = Path(settings.step_file)
        self.conversation_log = session_log_path(log_dir)
        self.agent_log = session_log_path(log_dir, prefix="agent")
        self._logged = 0

    def flush_transcript(self) -> None:
        self._logged = append_history(self.conversation_log, self.client.history(), self._logged)

    def turn(self, text: str) -> Optional[DriveResult]:
        try:
            reply = self.client.send_message(expand_mentions(text))
        except TransportError as exc:
            log.error("Request failed: %s", exc)
            print(f"Error: {exc}", flush=True)
            self.flush_transcript()
            return None

        result = drive(
            self.client,
            reply,
            self.settings.gating,
            confirm=self.confirm,
            max_rounds=self.settings.max_tool_rounds,
            sentinel=self.sentinel,
            after_round=self.flush_transcript,
        )
        self.run_agent_if_pending()
        return result

    def run_agent_if_pending(self) -> None:
        runner = StepRunner(
            self.client,
            self.settings.gating,
            sentinel=self.sentinel,
            agent_log=self.agent_log,
            confirm=self.confirm,
        )
        if runner.pending():
            runner.run()
            self.flush_transcript()


def repl(session: Session, read_line: Callable[[str], str] = input) -> int:
    print("Welcome to Arisu. Type 'exit' to quit.", flush=True)
    while True:
        try:
            line = read_line(PROMPT)
        except EOFError:
            print("\nGoodbye!", flush=True)
            return 0
        except KeyboardInterrupt:
            # Discard the partially typed input.
            print(flush=True)
            continue

        text = line.strip()
        if not text:
            continue
        if text == "exit":
            print("Goodbye!", flush=True)
            return 0

        try:
            session.turn(text)
        except KeyboardInterrupt:
            log.info("Turn interrupted by user (Ctrl‑C).")
            print("\nInterrupted.", flush=True)


# ─────────────────────────────────────────────────────────────────────────────
# Subcommand handlers
# ─────────────────────────────────────────────────────────────────────────────

def _open_session(args: argparse.Namespace) -> Session:
    settings = _effective_settings(args)
    client = _build_client(settings)
    return Session(client, settings, log_dir=ensure_log_dir())


def cmd_chat(args: argparse.Namespace) -> int:
    """
    Run the interactive REPL.
    """
    return repl(_open_session(args))


def cmd_ask(args: argparse.Namespace) -> int:
    """
    Send one prompt, run the resulting directives, then exit.
    """
    text = " ".join(args.prompt).strip()
    if text == "-":
        text = sys.stdin.read().strip()
    if not text:
        log.error("Missing prompt. Provide words after 'ask' or '-' to read from stdin.")
        return 1
    result = _open_session(args).turn(text)
    if result is None or result.aborted:
        return 1
    return 0


def cmd_apply(args: argparse.Namespace) -> int:
    """
    Execute the directives of a saved reply once, printing each result.
    """
    try:
        reply = Path(args.response_file).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        log.error("Failed to read %s: %s", args.response_file, exc)
        return 1

    gating = _effective_settings(args).gating
    directives = extract(reply)
    if not directives:
        print("No directives found.")
        return 0

    failures = 0
    for directive in directives:
        result = from_directive(directive).execute(gating)
        print(result.output, flush=True)
        if not result.ok:
            failures += 1
    log.info("Applied %d directive(s), %d failed", len(directives), failures)
    return 1 if failures else 0


def cmd_blocks(args: argparse.Namespace) -> int:
    """
    Print the numbered block listing of a file.
    """
    try:
        text = Path(args.file).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        log.error("Failed to read %s: %s", args.file, exc)
        return 1
    sys.stdout.write(render_listing(args.file, segment(text)))
    return 0


def cmd_config(args: argparse.Namespace) -> int:
    """
    Persist the given settings, or print the effective ones.
    """
    settings = load_settings()
    changes = {}
    if args.set_model:
        resolve_model(args.set_model)
        changes["selected_model"] = args.set_model
    if args.auto_edit is not None:
        changes["auto_edit"] = args.auto_edit
    if args.auto_run is not None:
        changes["auto_run"] = args.auto_run

    if not changes:
        print(json.dumps(settings.to_dict(), indent=2))
        return 0

    path = save_settings(replace(settings, **changes))
    print(f"Settings saved to {path}")
    return 0


def cmd_version(_args: argparse.Namespace) -> int:
    print(get_version())
    return 0


# ─────────────────────────────────────────────────────────────────────────────
# Argument parser
# ─────────────────────────────────────────────────────────────────────────────

def _session_flags() -> argparse.ArgumentParser:
    flags = argparse.ArgumentParser(add_help=False)
    flags.add_argument("--model", help="Model for this session (e.g. gemini, gpt-4.1, grok, openrouter-<id>).")
    flags.add_argument("--auto-edit", type=_bool_arg, metavar="true|false", help="Apply EDIT/PATCH without asking.")
    flags.add_argument("--auto-run", type=_bool_arg, metavar="true|false", help="Run RUN commands without asking.")
    return flags


def _parser() -> argparse.ArgumentParser:
    flags = _session_flags()
    p = argparse.ArgumentParser(
        prog="arisu",
        description="Arisu – terminal coding assistant",
        parents=[flags],
    )

    p.add_argument(
        "--version",
        action="store_true",
        help="Print package version and exit.",
    )
    p.set_defaults(func=cmd_chat)

    sub = p.add_subparsers(dest="cmd", metavar="command")

    pc = sub.add_parser("chat", parents=[flags], help="Interactive REPL (default)")
    pc.set_defaults(func=cmd_chat)

    pa = sub.add_parser("ask", parents=[flags], help="Send one prompt and run its directives")
    pa.add_argument("prompt", nargs="+", help="Prompt words, or '-' to read from stdin.")
    pa.set_defaults(func=cmd_ask)

    pp = sub.add_parser("apply", parents=[flags], help="Run the directives of a saved reply")
    pp.add_argument("response_file", help="Path to a file holding a model reply.")
    pp.set_defaults(func=cmd_apply)

    pb = sub.add_parser("blocks", help="Print a file split into numbered blocks")
    pb.add_argument("file", help="File to segment.")
    pb.set_defaults(func=cmd_blocks)

    pcf = sub.add_parser("config", help="Show or persist settings")
    pcf.add_argument("--set-model", help="Persist the default model.")
    pcf.add_argument("--auto-edit", type=_bool_arg, metavar="true|false", help="Persist the edit gate.")
    pcf.add_argument("--auto-run", type=_bool_arg, metavar="true|false", help="Persist the run gate.")
    pcf.set_defaults(func=cmd_config)

    pv = sub.add_parser("version", help="Print package version")
    pv.set_defaults(func=cmd_version)

    return p


def main(argv: Optional[list[str]] = None) -> int:
    try:
        parser = _parser()
        args = parser.parse_args(argv)

        if getattr(args, "version", False):
            print(get_version())
            return 0

        return int(args.func(args))
    except KeyboardInterrupt:
        log.info("Interrupted by user (Ctrl‑C).")
        return 130
    except SystemExit as exc:
        return int(exc.code) if isinstance(exc.code, int) else 1
    except ArisuError as exc:
        log.error("%s", exc)
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except Exception as exc:
        log.exception("Fatal error in CLI: %s", exc)
        return 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
