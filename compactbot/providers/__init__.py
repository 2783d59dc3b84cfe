"""LLM provider abstraction module."""

from compactbot.providers.base import (
    CompletionProviderError,
    LLMProvider,
    LLMResponse,
    ToolCallRequest,
)

__all__ = [
    "CompletionProviderError",
    "LLMProvider",
    "LLMResponse",
    "ToolCallRequest",
]
