"""Conversation wire model: role-tagged messages with typed content blocks."""

import json
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Base for wire types: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _string_or_none(value: Any) -> str | None:
    return value if isinstance(value, str) else None


class TextBlock(WireModel):
    type: Literal["text"] = "text"
    text: str = ""


class ToolCallBlock(WireModel):
    type: Literal["toolCall"] = "toolCall"
    id: str | None = None
    name: str | None = None
    arguments: dict[str, Any] = Field(default_factory=dict)

    # Malformed ids/names are kept as None so the call is skipped, not fatal
    @field_validator("id", "name", mode="before")
    @classmethod
    def _ids_are_strings(cls, value: Any) -> str | None:
        return _string_or_none(value)

    @field_validator("arguments", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return {} if value is None else value


class ThinkingBlock(WireModel):
    type: Literal["thinking"] = "thinking"
    thinking: str = ""


class ImageBlock(WireModel):
    type: Literal["image"] = "image"
    data: str = ""
    mime_type: str = ""


ContentBlock = Annotated[
    Union[TextBlock, ToolCallBlock, ThinkingBlock, ImageBlock],
    Field(discriminator="type"),
]


class Message(WireModel):
    """One conversation message.

    Tool results are messages with role ``toolResult`` that point back at the
    originating call through ``tool_call_id``.
    """

    role: Literal["user", "assistant", "toolResult"]
    content: list[ContentBlock] = Field(default_factory=list)
    tool_call_id: str | None = None
    tool_name: str | None = None
    is_error: bool = False

    @field_validator("tool_call_id", "tool_name", mode="before")
    @classmethod
    def _link_is_string(cls, value: Any) -> str | None:
        return _string_or_none(value)

    @field_validator("content", mode="before")
    @classmethod
    def _wrap_plain_text(cls, value: Any) -> Any:
        # User messages may carry a bare string instead of a block list
        if isinstance(value, str):
            return [{"type": "text", "text": value}]
        if value is None:
            return []
        return value

    @property
    def text(self) -> str:
        """Text blocks joined by newlines, stripped."""
        parts = [b.text for b in self.content if isinstance(b, TextBlock) and b.text]
        return "\n".join(parts).strip()

    @property
    def tool_calls(self) -> list[ToolCallBlock]:
        return [b for b in self.content if isinstance(b, ToolCallBlock)]


_CONVERSATION = TypeAdapter(list[Message])


def parse_conversation(data: Any) -> list[Message]:
    """Validate a JSON-decoded conversation (a list of message dicts)."""
    return _CONVERSATION.validate_python(data)


def dump_conversation(messages: list[Message]) -> str:
    """Serialize messages to the pretty-printed JSON shown to the summarizer."""
    data = [m.model_dump(by_alias=True, exclude_none=True) for m in messages]
    return json.dumps(data, indent=2, ensure_ascii=False)


def to_chat_messages(messages: list[Message]) -> list[dict[str, Any]]:
    """Convert messages to OpenAI chat format for LiteLLM.

    Thinking and image blocks are dropped; the summarizer only ever sees
    text and shell tool calls.
    """
    result: list[dict[str, Any]] = []
    for msg in messages:
        if msg.role == "toolResult":
            result.append({
                "role": "tool",
                "tool_call_id": msg.tool_call_id,
                "name": msg.tool_name or "",
                "content": msg.text,
            })
        elif msg.role == "assistant":
            chat_msg: dict[str, Any] = {"role": "assistant", "content": msg.text or None}
            if msg.tool_calls:
                chat_msg["tool_calls"] = [
                    {
                        "id": tc.id,
                        "type": "function",
                        "function": {
                            "name": tc.name,
                            "arguments": json.dumps(tc.arguments),
                        },
                    }
                    for tc in msg.tool_calls
                ]
            result.append(chat_msg)
        else:
            result.append({"role": "user", "content": msg.text})
    return result
