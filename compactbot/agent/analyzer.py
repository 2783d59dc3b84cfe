"""Deterministic analysis of the conversation being compacted.

Everything here is a pure function of the message list: which files the
session changed, and what focus note the user passed to ``/compact``.
"""

import posixpath
import re
import shlex
from dataclasses import dataclass, field
from typing import Any

from compactbot.session.messages import Message

MUTATING_TOOLS = frozenset({"write", "edit"})
SHELL_TOOLS = frozenset({"bash", "zsh"})

_COMPACT_COMMAND = re.compile(r"^/compact\b[ \t]*(.*)$", re.IGNORECASE | re.DOTALL)
# Anything beyond a single plain command makes the rm target unknowable
_SHELL_CONTROL = re.compile(r"[|&;<>`$()]")


@dataclass
class ToolCallInfo:
    """A tool call as issued by the assistant."""
    name: str
    args: dict[str, Any] = field(default_factory=dict)


@dataclass
class FileOps:
    """Files touched by successful tool calls, in first-seen order."""
    modified_files: list[str] = field(default_factory=list)
    deleted_files: list[str] = field(default_factory=list)


def uniq_paths(values: list[str]) -> list[str]:
    """Trim, drop blanks, and deduplicate keeping the first occurrence."""
    seen: dict[str, None] = {}
    for value in values:
        trimmed = value.strip()
        if trimmed:
            seen.setdefault(trimmed, None)
    return list(seen)


def index_tool_calls(messages: list[Message]) -> dict[str, ToolCallInfo]:
    """Map tool call id -> call for every assistant tool call.

    A repeated id overwrites the earlier call.
    """
    calls: dict[str, ToolCallInfo] = {}
    for msg in messages:
        if msg.role != "assistant":
            continue
        for tc in msg.tool_calls:
            if not isinstance(tc.id, str) or not isinstance(tc.name, str):
                continue
            calls[tc.id] = ToolCallInfo(name=tc.name, args=tc.arguments)
    return calls


def _modified_path(call: ToolCallInfo) -> str | None:
    if call.name not in MUTATING_TOOLS:
        return None
    path = call.args.get("path")
    return path if isinstance(path, str) else None


def _deleted_paths(call: ToolCallInfo) -> list[str]:
    """Operands of a plain ``rm`` issued through a shell tool."""
    if call.name not in SHELL_TOOLS:
        return []
    command = call.args.get("command")
    if not isinstance(command, str) or _SHELL_CONTROL.search(command):
        return []
    try:
        argv = shlex.split(command)
    except ValueError:
        return []
    if not argv or argv[0] != "rm":
        return []

    paths = []
    options_done = False
    for arg in argv[1:]:
        if not options_done and arg == "--":
            options_done = True
        elif not options_done and arg.startswith("-"):
            continue
        else:
            paths.append(arg)
    return paths


def detect_file_ops(messages: list[Message]) -> FileOps:
    """Pair tool calls with their successful results to find changed files.

    Failed results and results without a matching call are ignored. A path
    that was later deleted is reported only as deleted.
    """
    calls = index_tool_calls(messages)
    modified: list[str] = []
    deleted: list[str] = []

    for msg in messages:
        if msg.role != "toolResult" or msg.is_error:
            continue
        call = calls.get(msg.tool_call_id) if msg.tool_call_id else None
        if call is None:
            continue

        path = _modified_path(call)
        if path:
            modified.append(path)
        deleted.extend(_deleted_paths(call))

    deleted_files = uniq_paths(deleted)
    deleted_set = set(deleted_files)
    modified_files = [p for p in uniq_paths(modified) if p not in deleted_set]
    return FileOps(modified_files=modified_files, deleted_files=deleted_files)


def is_temp_artifact_path(path: str) -> bool:
    """Heuristic for scratch files that don't belong in a summary."""
    normalized = path.strip()
    if not normalized:
        return False

    base = posixpath.basename(normalized.replace("\\", "/")).lower()
    return base.startswith("__tmp") or base.endswith(".tmp") or ".tmp." in base


def extract_compaction_note(messages: list[Message]) -> str | None:
    """Return the note from the most recent ``/compact <note>`` user message.

    Only the newest ``/compact`` counts: if it carries no note, the result is
    ``None`` even when an older one had a note.
    """
    for msg in reversed(messages):
        if msg.role != "user":
            continue
        text = msg.text
        if not text:
            continue

        match = _COMPACT_COMMAND.match(text.strip())
        if not match:
            continue

        note = match.group(1).strip()
        return note or None

    return None


def resolve_compaction_note(
    custom_instructions: Any, messages: list[Message]
) -> str | None:
    """Explicit instructions win over a note found in the conversation."""
    if isinstance(custom_instructions, str) and custom_instructions.strip():
        return custom_instructions.strip()
    return extract_compaction_note(messages)
