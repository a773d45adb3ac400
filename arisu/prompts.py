#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
===============================================================================
Arisu ▸ Prompt Builders
===============================================================================

The system prompt is the only place the directive syntax is taught to the
model, so it must match `arisu.directives` exactly. It advertises the four
implemented tags, the `[TOOL_CALL]` marker and the agentic step file.
"""
from __future__ import annotations

import platform

from arisu import get_logger
from arisu.directives import TOOL_CALL_MARKER

log = get_logger(__name__)

DEFAULT_STEP_FILE = "AGENTSTEPS.arisu"
PROCEED = "Proceed."
END_MARKER = "<END>"


def _directive_section() -> str:
    return (
        "1. To run bash commands (e.g., 'ls', 'cat') on my computer, include them like this:\n\n"
        "<RUN>\n"
        "shell_command_here\n"
        "</RUN>\n\n"
        "For example:\n"
        "<RUN>\n"
        "ls && echo \"---\" && cat pyproject.toml\n"
        "</RUN>\n\n"
        "2. If I ask you to read a file or you need its contents, include the filename like this:\n\n"
        "<READ>\n"
        "filename.txt\n"
        "</READ>\n\n"
        "The file comes back split into numbered blocks of non-empty lines, for use with PATCH.\n\n"
        "3. To update part of a file, use PATCH with the block id from the last READ:\n\n"
        "<PATCH>\n"
        "filename.txt\n"
        "block_id\n"
        "new_content_here\n"
        "</PATCH>\n\n"
        "To delete a block, give only the filename and block_id.\n"
        "To split a block, include empty lines in the new content.\n"
        "Block ids are recomputed from the file every time, so READ again after patching.\n\n"
        "4. To create a new file or overwrite one completely, use EDIT:\n\n"
        "<EDIT>\n"
        "filename.txt\n"
        "full_content\n"
        "</EDIT>\n\n"
    )


def _tool_call_section() -> str:
    return (
        f"To execute an action immediately and get its result back to continue the conversation, "
        f"prepend {TOOL_CALL_MARKER} before the tag.\n"
        "Example:\n"
        f"{TOOL_CALL_MARKER} <RUN>\nls -la\n</RUN>\n"
        "This runs the command and feeds the output back to you automatically.\n"
        f"Use {TOOL_CALL_MARKER} repeatedly to verify your work (reading files back, running tests) "
        "until you are sure the request is fulfilled.\n\n"
    )


def _agent_section() -> str:
    return (
        "Agentic mode: when asked, create a file named "
        f"'{DEFAULT_STEP_FILE}' (using EDIT tags, and no other tags inside it) with this structure:\n"
        "Instructions:\n"
        "You are running in Agentic mode. Follow the steps exactly, one by one.\n"
        f"After each step you will receive {PROCEED} automatically.\n"
        f"When you completed all the tasks, send the tag {END_MARKER}.\n"
        "Context:\n"
        "<code, text or anything essential to carry out the steps>\n"
        "Steps:\n"
        "- first instruction\n"
        "- second instruction\n"
        "At most 10 steps are run.\n\n"
    )


def _rules_section() -> str:
    return (
        "Important:\n"
        "- NEVER run/read/edit UNLESS I ASK FOR IT (indirectly or directly).\n"
        "- NEVER use the tags unless you are sure that it is a valid command; "
        "the program always picks them up.\n"
        "- When presenting code in your responses, do NOT use triple backticks (```). "
        "Write the code as plain text directly in the response.\n"
        "- Keep your answers concise, relevant, and focused on simplicity.\n"
        "- When overwriting files, always provide the complete new version of the file, "
        "never partial changes or placeholders.\n"
    )


def system_prompt() -> str:
    """Shared system instructions injected at the start of every conversation."""
    text = (
        f"This conversation is running inside a terminal session on {platform.system().lower()}.\n\n"
        "You are an AI assistant designed to help refactor and interact with code files.\n\n"
        + _directive_section()
        + _tool_call_section()
        + _agent_section()
        + _rules_section()
    )
    log.debug("System prompt built (%d chars)", len(text))
    return text


__all__ = ["system_prompt", "DEFAULT_STEP_FILE", "PROCEED", "END_MARKER"]
