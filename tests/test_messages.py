"""Tests for the conversation wire model."""

import json

import pytest
from pydantic import ValidationError

from compactbot.session.messages import (
    ImageBlock,
    Message,
    TextBlock,
    ThinkingBlock,
    ToolCallBlock,
    dump_conversation,
    parse_conversation,
    to_chat_messages,
)


class TestParseConversation:
    def test_block_types_resolved(self):
        [msg] = parse_conversation([{
            "role": "assistant",
            "content": [
                {"type": "thinking", "thinking": "hmm"},
                {"type": "text", "text": "looking"},
                {"type": "toolCall", "id": "c1", "name": "read", "arguments": {"path": "/a"}},
                {"type": "image", "data": "AAAA", "mimeType": "image/png"},
            ],
        }])
        assert [type(b) for b in msg.content] == [ThinkingBlock, TextBlock, ToolCallBlock, ImageBlock]
        assert msg.content[3].mime_type == "image/png"

    def test_unknown_block_type_rejected(self):
        with pytest.raises(ValidationError):
            parse_conversation([{"role": "user", "content": [{"type": "video", "url": "x"}]}])

    def test_unknown_role_rejected(self):
        with pytest.raises(ValidationError):
            parse_conversation([{"role": "system", "content": "x"}])

    def test_string_content_wrapped(self):
        [msg] = parse_conversation([{"role": "user", "content": "hello"}])
        assert msg.content == [TextBlock(text="hello")]

    def test_tool_result_fields(self):
        [msg] = parse_conversation([{
            "role": "toolResult", "toolCallId": "c1", "toolName": "write",
            "isError": True, "content": [{"type": "text", "text": "denied"}],
        }])
        assert msg.tool_call_id == "c1"
        assert msg.tool_name == "write"
        assert msg.is_error is True

    def test_non_string_ids_become_none(self):
        [call, result] = parse_conversation([
            {"role": "assistant", "content": [
                {"type": "toolCall", "id": 7, "name": ["write"], "arguments": {}},
            ]},
            {"role": "toolResult", "toolCallId": 7, "toolName": 3, "content": "ok"},
        ])
        assert call.tool_calls[0].id is None
        assert call.tool_calls[0].name is None
        assert result.tool_call_id is None
        assert result.tool_name is None

    def test_null_arguments_become_empty(self):
        [msg] = parse_conversation([{
            "role": "assistant",
            "content": [{"type": "toolCall", "id": "c1", "name": "ls", "arguments": None}],
        }])
        assert msg.tool_calls[0].arguments == {}


class TestMessage:
    def test_text_joins_text_blocks(self):
        msg = Message(role="assistant", content=[
            {"type": "text", "text": " first"},
            {"type": "thinking", "thinking": "ignored"},
            {"type": "text", "text": "second "},
        ])
        assert msg.text == "first\nsecond"

    def test_no_content(self):
        assert Message(role="user", content=None).text == ""


class TestDumpConversation:
    def test_camel_case_and_no_nulls(self):
        messages = [Message(role="toolResult", tool_call_id="c1", content="ok")]
        data = json.loads(dump_conversation(messages))
        assert data == [{
            "role": "toolResult",
            "content": [{"type": "text", "text": "ok"}],
            "toolCallId": "c1",
            "isError": False,
        }]

    def test_pretty_printed(self):
        dumped = dump_conversation([Message(role="user", content="x")])
        assert dumped.startswith("[\n  {")


class TestToChatMessages:
    def test_all_roles(self):
        messages = [
            Message(role="user", content="hi"),
            Message(role="assistant", content=[
                {"type": "toolCall", "id": "c1", "name": "bash", "arguments": {"command": "ls"}},
            ]),
            Message(role="toolResult", tool_call_id="c1", tool_name="bash", content="a.txt"),
            Message(role="assistant", content="done"),
        ]
        assert to_chat_messages(messages) == [
            {"role": "user", "content": "hi"},
            {
                "role": "assistant",
                "content": None,
                "tool_calls": [{
                    "id": "c1",
                    "type": "function",
                    "function": {"name": "bash", "arguments": '{"command": "ls"}'},
                }],
            },
            {"role": "tool", "tool_call_id": "c1", "name": "bash", "content": "a.txt"},
            {"role": "assistant", "content": "done"},
        ]
