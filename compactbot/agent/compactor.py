"""Agentic compaction: summarize a conversation by letting a model explore it."""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Any

from loguru import logger

from compactbot.agent.analyzer import detect_file_ops, resolve_compaction_note
from compactbot.agent.loop import CancelSignal, SummarizerLoop
from compactbot.agent.selector import select_compaction_model
from compactbot.agent.tools.shell import create_shell_tools
from compactbot.bus.events import Notifier, Severity
from compactbot.config.schema import CompactionConfig
from compactbot.debug.recorder import CompactionRecorder
from compactbot.prompts.compaction import (
    CONVERSATION_PATH,
    build_file_ops_context,
    build_initial_user_prompt,
    build_system_prompt,
    build_user_note_context,
)
from compactbot.providers.base import LLMProvider
from compactbot.providers.registry import ModelDescriptor, ModelRegistry
from compactbot.sandbox.base import SandboxExecutor
from compactbot.session.messages import Message, dump_conversation


class CompactionStatus(str, Enum):
    completed = "completed"
    no_messages = "no_messages"
    no_model = "no_model"
    cancelled = "cancelled"
    too_short = "too_short"
    failed = "failed"


@dataclass
class CompactionRequest:
    """Everything the host knows about the compaction it wants."""
    session_id: str
    messages: list[Message]
    first_kept_entry_id: str
    tokens_before: int = 0
    previous_summary: str | None = None
    custom_instructions: Any = None
    session_model: ModelDescriptor | None = None


@dataclass
class CompactionResult:
    """The summary replacing the compacted prefix."""
    summary: str
    first_kept_entry_id: str
    tokens_before: int


@dataclass
class CompactionOutcome:
    status: CompactionStatus
    result: CompactionResult | None = None
    error: str | None = None
    model: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == CompactionStatus.completed


class Compactor:
    """Runs one agentic compaction end to end.

    Never raises for the expected failure modes and never touches the input
    conversation; anything other than ``completed`` means the host should
    leave its history as it is.
    """

    def __init__(
        self,
        provider: LLMProvider,
        registry: ModelRegistry,
        executor: SandboxExecutor,
        config: CompactionConfig,
        notifier: Notifier,
        recorder: CompactionRecorder | None = None,
    ):
        self.provider = provider
        self.registry = registry
        self.executor = executor
        self.config = config
        self.notifier = notifier
        self.recorder = recorder or CompactionRecorder(enabled=config.debug_compactions)

    async def compact(
        self, request: CompactionRequest, signal: CancelSignal | None = None
    ) -> CompactionOutcome:
        messages = request.messages
        if not messages:
            logger.debug("No messages to compact")
            return CompactionOutcome(CompactionStatus.no_messages)

        selection = await select_compaction_model(
            self.config.compaction_models,
            self.registry,
            request.session_model,
            self.config.thinking_level,
        )
        if selection is None:
            self.notifier.notify("No model available for compaction", Severity.warning)
            return CompactionOutcome(CompactionStatus.no_model)

        model_name = selection.model.litellm_model
        self.notifier.notify(
            f"Compacting {len(messages)} messages with {model_name}", Severity.info,
        )

        note = resolve_compaction_note(request.custom_instructions, messages)
        system_prompt = build_system_prompt(
            build_file_ops_context(detect_file_ops(messages)),
            build_user_note_context(note),
            request.previous_summary,
        )
        initial_prompt = build_initial_user_prompt(note)
        files = {CONVERSATION_PATH: dump_conversation(messages)}

        record: dict[str, Any] = {
            "input": [m.model_dump(by_alias=True, exclude_none=True) for m in messages],
            "custom_instructions": request.custom_instructions,
            "extracted_user_compaction_note": note,
            "initial_message": initial_prompt,
            "model": model_name,
        }

        loop = SummarizerLoop(
            provider=self.provider,
            tools=create_shell_tools(
                self.executor, files, self.config.tool_result_max_chars,
            ),
            config=self.config,
            notifier=self.notifier,
        )

        started = time.monotonic()
        try:
            summary = await loop.run(selection, system_prompt, initial_prompt, signal)
        except Exception as e:
            message = str(e) or e.__class__.__name__
            logger.warning(f"Compaction failed: {message}")
            self.recorder.record(request.session_id, {**record, "error": message})
            if not (signal is not None and signal.is_set()):
                self.notifier.notify(f"Compaction failed: {message}", Severity.warning)
            return CompactionOutcome(CompactionStatus.failed, error=message, model=model_name)

        if summary is None or (signal is not None and signal.is_set()):
            logger.info("Compaction cancelled")
            return CompactionOutcome(CompactionStatus.cancelled, model=model_name)

        if len(summary) < self.config.min_summary_chars:
            logger.warning(f"Compaction skipped: summary too short ({len(summary)} chars)")
            self.recorder.record(
                request.session_id, {**record, "error": "Summary too short"},
            )
            return CompactionOutcome(
                CompactionStatus.too_short, error="Summary too short", model=model_name,
            )

        result = CompactionResult(
            summary=summary,
            first_kept_entry_id=request.first_kept_entry_id,
            tokens_before=request.tokens_before,
        )
        self.recorder.record(request.session_id, {
            **record,
            "output": {
                "summary": summary,
                "first_kept_entry_id": result.first_kept_entry_id,
                "tokens_before": result.tokens_before,
            },
        })
        logger.info(
            f"Compaction finished with {model_name}: {len(messages)} messages "
            f"into {len(summary)} chars in {time.monotonic() - started:.1f}s"
        )
        return CompactionOutcome(CompactionStatus.completed, result=result, model=model_name)
