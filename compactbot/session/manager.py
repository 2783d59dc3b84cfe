"""Session files: load a conversation, prepare and record compactions."""

import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from loguru import logger

from compactbot.agent.tokens import estimate_message_tokens, estimate_messages_tokens
from compactbot.session.messages import Message


class SessionError(Exception):
    """A session file could not be read or updated."""


def extract_messages(entries: list[dict[str, Any]]) -> list[Message]:
    """Messages of all ``message`` entries, in order."""
    return [
        Message.model_validate(e["message"])
        for e in entries
        if e.get("type") == "message" and e.get("message")
    ]


@dataclass
class CompactionPreparation:
    """What a compaction of a session needs from the host."""
    messages: list[Message]
    first_kept_entry_id: str
    tokens_before: int
    previous_summary: str | None = None


@dataclass
class SessionFile:
    """
    A conversation session on disk.

    Either JSONL (a ``session`` header line followed by ``message`` and
    ``compaction`` entries) or a plain JSON array of messages, which is
    read-only.
    """

    path: Path
    entries: list[dict[str, Any]] = field(default_factory=list)
    header: dict[str, Any] = field(default_factory=dict)
    writable: bool = True

    TAIL_MIN = 10
    TAIL_MAX = 20
    TAIL_TOKEN_RATIO = 0.05  # 5% of max_context_tokens

    @property
    def session_id(self) -> str:
        return str(self.header.get("id") or self.path.stem)

    @classmethod
    def load(cls, path: Path) -> "SessionFile":
        """Load a session file, detecting its format from the first character."""
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise SessionError(f"Cannot read session {path}: {e}") from e

        try:
            if text.lstrip().startswith("["):
                return cls._from_array(path, json.loads(text))
            return cls._from_jsonl(path, text)
        except json.JSONDecodeError as e:
            raise SessionError(f"Malformed session {path}: {e}") from e

    @classmethod
    def _from_array(cls, path: Path, data: list[Any]) -> "SessionFile":
        entries = [
            {"type": "message", "id": f"m{i}", "message": m}
            for i, m in enumerate(data)
        ]
        return cls(path=path, entries=entries, writable=False)

    @classmethod
    def _from_jsonl(cls, path: Path, text: str) -> "SessionFile":
        header: dict[str, Any] = {}
        entries = []
        for line in text.splitlines():
            line = line.strip()
            if not line:
                continue
            data = json.loads(line)
            if data.get("type") == "session":
                header = data
            else:
                entries.append(data)
        return cls(path=path, entries=entries, header=header)

    # ── compaction ──────────────────────────────────────────────

    def messages(self) -> list[Message]:
        return extract_messages(self.entries)

    def prepare_compaction(
        self, max_context_tokens: int = 200_000
    ) -> CompactionPreparation | None:
        """Work out what to summarize and where the kept tail starts.

        Returns None when the session is too short to compact or nothing
        new happened since the last compaction.
        """
        message_entries = [
            (e, Message.model_validate(e["message"]))
            for e in self.entries
            if e.get("type") == "message" and e.get("message")
        ]
        if len(message_entries) < self.TAIL_MIN:
            logger.warning("Compaction skipped: fewer than TAIL_MIN session messages")
            return None

        messages = [m for _, m in message_entries]
        last = self._last_compaction()
        compact_start = 0
        if last is not None:
            ids = [e.get("id") for e, _ in message_entries]
            kept = last.get("firstKeptEntryId")
            compact_start = ids.index(kept) if kept in ids else 0

        tail_count = self._determine_tail(messages, max_context_tokens)
        compact_end = len(messages) - tail_count
        if compact_end <= compact_start:
            logger.warning("Compaction skipped: nothing to compact between boundaries")
            return None

        first_kept = message_entries[compact_end][0]
        return CompactionPreparation(
            messages=messages,
            first_kept_entry_id=str(first_kept.get("id", "")),
            tokens_before=estimate_messages_tokens(messages),
            previous_summary=last.get("summary") if last else None,
        )

    def append_compaction(
        self, summary: str, first_kept_entry_id: str, tokens_before: int
    ) -> dict[str, Any]:
        """Append a compaction entry to the JSONL file and return it."""
        if not self.writable:
            raise SessionError(f"{self.path} is a plain JSON conversation; cannot record compaction")

        entry = {
            "type": "compaction",
            "id": uuid.uuid4().hex[:8],
            "timestamp": datetime.now().isoformat(),
            "summary": summary,
            "firstKeptEntryId": first_kept_entry_id,
            "tokensBefore": tokens_before,
        }
        try:
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(json.dumps(entry, ensure_ascii=False) + "\n")
        except OSError as e:
            raise SessionError(f"Cannot write session {self.path}: {e}") from e

        self.entries.append(entry)
        logger.info(f"Recorded compaction {entry['id']} in {self.path}")
        return entry

    def _last_compaction(self) -> dict[str, Any] | None:
        for entry in reversed(self.entries):
            if entry.get("type") == "compaction":
                return entry
        return None

    def _determine_tail(self, messages: list[Message], max_context_tokens: int) -> int:
        """Return the number of tail messages to keep verbatim.

        Grows from TAIL_MIN towards TAIL_MAX while the tail stays under the
        token budget, then extends backwards so the tail never starts with
        a tool result orphaned from its assistant tool call.
        """
        max_tail_tokens = int(max_context_tokens * self.TAIL_TOKEN_RATIO)
        tail_count = min(self.TAIL_MIN, len(messages))
        tail_tokens = sum(estimate_message_tokens(m) for m in messages[-tail_count:])

        while tail_count < self.TAIL_MAX and tail_count < len(messages):
            next_tokens = estimate_message_tokens(messages[-(tail_count + 1)])
            if tail_tokens + next_tokens > max_tail_tokens:
                break
            tail_count += 1
            tail_tokens += next_tokens

        if tail_count < len(messages) and messages[-tail_count].role == "toolResult":
            while tail_count < len(messages):
                tail_count += 1
                if messages[-tail_count].role == "assistant":
                    break

        return tail_count
