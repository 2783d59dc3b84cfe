"""Summarizer agent loop: completion requests alternating with tool dispatch."""

from enum import Enum
from typing import Protocol

from loguru import logger

from compactbot.agent.concurrency import map_with_concurrency
from compactbot.agent.selector import ModelSelection
from compactbot.agent.tools.base import Tool, ToolCallResult
from compactbot.bus.events import Notifier, Severity
from compactbot.config.schema import CompactionConfig
from compactbot.providers.base import LLMProvider, LLMResponse, ToolCallRequest
from compactbot.session.messages import (
    ContentBlock,
    Message,
    TextBlock,
    ToolCallBlock,
    to_chat_messages,
)


class CancelSignal(Protocol):
    """Read-only cancellation token, e.g. an ``asyncio.Event``."""

    def is_set(self) -> bool: ...


class LoopState(str, Enum):
    requesting = "requesting"
    executing = "executing"
    done = "done"
    aborted = "aborted"
    failed = "failed"


class SummarizerLoop:
    """
    Drives the summarizer until it answers with text instead of tool calls.

    Completion requests are strictly sequential. The tool calls of one turn
    run concurrently (bounded by ``tool_call_concurrency``) and their results
    are appended in call order. Cancellation is checked only before each
    completion request; running requests and tool batches are not interrupted.
    Completion errors are not retried and propagate to the caller.
    """

    def __init__(
        self,
        provider: LLMProvider,
        tools: list[Tool],
        config: CompactionConfig,
        notifier: Notifier,
    ):
        self.provider = provider
        self.tools = {tool.name: tool for tool in tools}
        self.config = config
        self.notifier = notifier
        self.state = LoopState.requesting

    async def run(
        self,
        selection: ModelSelection,
        system_prompt: str,
        initial_prompt: str,
        signal: CancelSignal | None = None,
    ) -> str | None:
        """Run to completion. Returns the summary, or None when cancelled."""
        transcript: list[Message] = []
        pending: list[ToolCallRequest] = []
        self.state = LoopState.requesting

        while True:
            if self.state == LoopState.requesting:
                if signal is not None and signal.is_set():
                    self.state = LoopState.aborted
                    logger.info("Summarizer loop cancelled before completion request")
                    return None

                try:
                    response = await self._request(
                        selection, system_prompt, initial_prompt, transcript,
                    )
                except Exception:
                    self.state = LoopState.failed
                    raise

                transcript.append(_assistant_message(response))
                if not response.has_tool_calls:
                    self.state = LoopState.done
                    return (response.content or "").strip()

                pending = response.tool_calls
                self.state = LoopState.executing

            elif self.state == LoopState.executing:
                results = await map_with_concurrency(
                    pending, self.config.tool_call_concurrency, self._dispatch,
                )
                for tc, result in zip(pending, results):
                    transcript.append(Message(
                        role="toolResult",
                        tool_call_id=tc.id,
                        tool_name=tc.name,
                        content=[TextBlock(text=result.output)],
                        is_error=result.is_error,
                    ))
                pending = []
                self.state = LoopState.requesting

    async def _request(
        self,
        selection: ModelSelection,
        system_prompt: str,
        initial_prompt: str,
        transcript: list[Message],
    ) -> LLMResponse:
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": initial_prompt},
        ] + to_chat_messages(transcript)

        thinking = selection.thinking_level
        return await self.provider.chat(
            messages=messages,
            tools=[tool.to_schema() for tool in self.tools.values()],
            model=selection.model.litellm_model,
            api_key=selection.api_key,
            reasoning_effort=None if thinking == "off" else thinking,
        )

    async def _dispatch(self, tc: ToolCallRequest, index: int) -> ToolCallResult:
        command = tc.arguments.get("command")
        command = command if isinstance(command, str) else ""
        limit = self.config.tool_call_preview_chars
        suffix = "..." if len(command) > limit else ""
        self.notifier.notify(f"{tc.name}: {command[:limit]}{suffix}", Severity.info)

        tool = self.tools.get(tc.name)
        if tool is None:
            return ToolCallResult(output=f"Error: unknown tool '{tc.name}'", is_error=True)

        logger.debug(f"Executing tool [{index}]: {tc.name} {command!r}")
        return await tool.execute(**tc.arguments)


def _assistant_message(response: LLMResponse) -> Message:
    content: list[ContentBlock] = []
    if response.content:
        content.append(TextBlock(text=response.content))
    for tc in response.tool_calls:
        content.append(ToolCallBlock(id=tc.id, name=tc.name, arguments=tc.arguments))
    return Message(role="assistant", content=content)
