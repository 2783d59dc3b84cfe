"""Completion provider backed by LiteLLM."""

import json
from typing import Any

import litellm
from litellm import acompletion

from compactbot.providers.base import (
    CompletionProviderError,
    LLMProvider,
    LLMResponse,
    ToolCallRequest,
)

# LiteLLM has no "xhigh"; clamp to its strongest setting
REASONING_EFFORTS = {
    "minimal": "minimal",
    "low": "low",
    "medium": "medium",
    "high": "high",
    "xhigh": "high",
}


def _decode_arguments(raw: Any) -> dict[str, Any]:
    """Tool arguments arrive as a JSON string; keep undecodable input under ``raw``."""
    if isinstance(raw, str):
        if not raw:
            return {}
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError:
            return {"raw": raw}
    return raw if isinstance(raw, dict) else {"raw": raw}


class LiteLLMProvider(LLMProvider):
    """
    Sends summarizer turns to any compaction candidate through LiteLLM.

    Cerebras, Anthropic, OpenAI and Gemini all go through the same
    ``acompletion`` call. The API key travels with each request instead of
    through process environment variables, so two compactions with
    different credentials never interfere.
    """

    def __init__(self, api_base: str | None = None):
        super().__init__()
        self.api_base = api_base

        # Quiet LiteLLM and let it drop params a model doesn't accept
        litellm.suppress_debug_info = True
        litellm.drop_params = True

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
        Run one summarizer turn.

        Args:
            messages: OpenAI-format chat messages (system prompt first).
            tools: The bash/zsh function schemas, if the turn may call them.
            model: LiteLLM model string, e.g. 'cerebras/qwen-3-32b'.
            api_key: Credential resolved by the model registry.
            reasoning_effort: Thinking level; None or 'off' sends none.
            max_tokens: Output cap, defaults to ``default_max_tokens``.
            temperature: Defaults to ``default_temperature``.

        Returns:
            The assistant text and any requested tool calls.
        """
        if not model:
            raise CompletionProviderError("No model given for completion request")

        request: dict[str, Any] = {
            "model": model,
            "messages": messages,
            "max_tokens": max_tokens if max_tokens is not None else self.default_max_tokens,
            "temperature": temperature if temperature is not None else self.default_temperature,
        }
        if api_key:
            request["api_key"] = api_key
        if self.api_base:
            request["api_base"] = self.api_base
        if reasoning_effort in REASONING_EFFORTS:
            request["reasoning_effort"] = REASONING_EFFORTS[reasoning_effort]
        if tools:
            request["tools"] = tools
            request["tool_choice"] = "auto"

        try:
            raw = await acompletion(**request)
        except Exception as e:
            raise CompletionProviderError(f"Completion request to {model} failed: {e}") from e
        return self._to_response(raw)

    def _to_response(self, raw: Any) -> LLMResponse:
        choice = raw.choices[0]
        message = choice.message

        calls = [
            ToolCallRequest(
                id=tc.id,
                name=tc.function.name,
                arguments=_decode_arguments(tc.function.arguments),
            )
            for tc in (getattr(message, "tool_calls", None) or [])
        ]

        usage: dict[str, int] = {}
        if getattr(raw, "usage", None):
            usage = {
                key: getattr(raw.usage, key)
                for key in ("prompt_tokens", "completion_tokens", "total_tokens")
            }

        return LLMResponse(
            content=message.content,
            tool_calls=calls,
            finish_reason=choice.finish_reason or "stop",
            usage=usage,
        )
