"""Completion provider interface used by the summarizer loop."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


class CompletionProviderError(Exception):
    """A completion request failed. Fatal for the summarizer loop."""


@dataclass
class ToolCallRequest:
    """One tool call the model asked for, with decoded arguments."""
    id: str
    name: str
    arguments: dict[str, Any]


@dataclass
class LLMResponse:
    """A single assistant turn."""
    content: str | None
    tool_calls: list[ToolCallRequest] = field(default_factory=list)
    finish_reason: str = "stop"
    usage: dict[str, int] = field(default_factory=dict)

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)


class LLMProvider(ABC):
    """
    Something that can answer a chat completion request.

    Failures must surface as ``CompletionProviderError``, never as error
    text in the response: the loop treats any returned text as the summary.
    """

    def __init__(self):
        self.default_temperature: float = 0.3
        self.default_max_tokens: int = 8192

    @abstractmethod
    async def chat(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
        model: str | None = None,
        api_key: str | None = None,
        reasoning_effort: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> LLMResponse:
        """
        Request the next assistant turn.

        Raises:
            CompletionProviderError: If the request fails for any reason.
        """
        pass
