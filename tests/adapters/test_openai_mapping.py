from __future__ import annotations

import pytest

from foundry_relay.core import AdapterError, ImagePart, Message, MessageRole, TextPart, ToolCall
from foundry_relay.core.adapters.utils import messages_to_openai


def test_roles_and_string_content_map_directly() -> None:
    messages = [
        Message(role=MessageRole.USER, content="Hello"),
        Message(role=MessageRole.ASSISTANT, content="Hi!"),
        Message(role="developer", content="Be brief"),  # type: ignore[arg-type]
    ]

    assert messages_to_openai(messages) == [
        {"role": "user", "content": "Hello"},
        {"role": "assistant", "content": "Hi!"},
        {"role": "developer", "content": "Be brief"},
    ]


def test_content_parts_become_text_and_image_url_entries() -> None:
    message = Message(
        role=MessageRole.USER,
        content=[
            TextPart("What is in this picture?"),
            ImagePart("iVBORw0KGgo=", media_type="image/png"),
            ImagePart("https://example.com/cat.jpg"),
        ],
    )

    [payload] = messages_to_openai([message])

    assert payload["content"] == [
        {"type": "text", "text": "What is in this picture?"},
        {"type": "image_url", "image_url": {"url": "data:image/png;base64,iVBORw0KGgo="}},
        {"type": "image_url", "image_url": {"url": "https://example.com/cat.jpg"}},
    ]
    assert isinstance(message.content, tuple)


def test_assistant_tool_calls_and_tool_results() -> None:
    call = ToolCall(id="call_1", name="read_file", arguments={"path": "a.py", "lines": [1, 2]})
    messages = [
        Message(role=MessageRole.ASSISTANT, content="", tool_calls=[call]),
        Message(role=MessageRole.TOOL, content="print('hi')", tool_call_id="call_1"),
    ]

    assert messages_to_openai(messages) == [
        {
            "role": "assistant",
            "content": None,
            "tool_calls": [
                {
                    "id": "call_1",
                    "type": "function",
                    "function": {"name": "read_file", "arguments": '{"path": "a.py", "lines": [1, 2]}'},
                }
            ],
        },
        {"role": "tool", "content": "print('hi')", "tool_call_id": "call_1"},
    ]


def test_tool_messages_require_call_id() -> None:
    with pytest.raises(ValueError, match="tool_call_id"):
        Message(role=MessageRole.TOOL, content="result")


def test_tool_call_id_rejected_on_other_roles() -> None:
    with pytest.raises(ValueError):
        Message(role=MessageRole.USER, content="hi", tool_call_id="call_1")


def test_only_assistant_messages_carry_tool_calls() -> None:
    call = ToolCall(id="call_1", name="f", arguments={})
    with pytest.raises(ValueError):
        Message(role=MessageRole.USER, content="", tool_calls=[call])


def test_empty_content_without_tool_calls_is_rejected() -> None:
    with pytest.raises(ValueError):
        Message(role=MessageRole.USER, content="")
    with pytest.raises(ValueError):
        Message(role=MessageRole.USER, content=[])


def test_content_parts_are_type_checked() -> None:
    with pytest.raises(TypeError):
        Message(role=MessageRole.USER, content=[{"type": "text", "text": "raw dict"}])  # type: ignore[list-item]
    with pytest.raises(ValueError):
        ImagePart("")


def test_tool_call_arguments_are_frozen_json() -> None:
    call = ToolCall(id="call_1", name="f", arguments={"nested": {"items": [1, 2]}})

    with pytest.raises(TypeError):
        call.arguments["new"] = 1  # type: ignore[index]
    assert call.arguments["nested"]["items"] == (1, 2)

    with pytest.raises(ValueError):
        ToolCall(id="call_1", name="f", arguments={"bad": float("nan")})


def test_non_message_entries_are_rejected() -> None:
    with pytest.raises(AdapterError):
        messages_to_openai([{"role": "user", "content": "hi"}])  # type: ignore[list-item]
