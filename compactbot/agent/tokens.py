"""Approximate token estimation for compaction bookkeeping."""

import json

from compactbot.session.messages import (
    ImageBlock,
    Message,
    TextBlock,
    ThinkingBlock,
    ToolCallBlock,
)

CHARS_PER_TOKEN = 4  # Cross-model estimate (EN text/code/JSON)
IMAGE_TOKENS = 800
MESSAGE_OVERHEAD = 4  # Role, separators


def estimate_tokens(text: str) -> int:
    """Estimate token count from character count."""
    return len(text) // CHARS_PER_TOKEN


def estimate_message_tokens(msg: Message) -> int:
    """Estimate tokens for one message, including tool call arguments."""
    total = MESSAGE_OVERHEAD
    for block in msg.content:
        if isinstance(block, TextBlock):
            total += estimate_tokens(block.text)
        elif isinstance(block, ThinkingBlock):
            total += estimate_tokens(block.thinking)
        elif isinstance(block, ToolCallBlock):
            total += estimate_tokens(block.name or "")
            total += estimate_tokens(json.dumps(block.arguments))
        elif isinstance(block, ImageBlock):
            total += IMAGE_TOKENS
    return total


def estimate_messages_tokens(messages: list[Message]) -> int:
    """Estimate total tokens for a message list."""
    return sum(estimate_message_tokens(m) for m in messages)
