"""Pure conversion helpers shared by adapter implementations."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from ..errors import AdapterError
from ..message import ImagePart, Message, MessageRole, TextPart
from .toolbridge import tool_call_to_openai


def messages_to_openai(messages: Sequence[Message]) -> list[dict[str, Any]]:
    """Convert conversation history into the chat-completion ``messages`` format."""

    converted: list[dict[str, Any]] = []
    for message in messages:
        if not isinstance(message, Message):
            msg = "messages must contain Message instances"
            raise AdapterError(msg)

        payload: dict[str, Any] = {
            "role": message.role.value,
            "content": _content_to_openai(message.content),
        }
        if message.tool_calls:
            payload["tool_calls"] = [tool_call_to_openai(call) for call in message.tool_calls]
            if not message.content:
                payload["content"] = None
        if message.role is MessageRole.TOOL:
            payload["tool_call_id"] = message.tool_call_id
        converted.append(payload)

    return converted


def _content_to_openai(content: str | tuple[TextPart | ImagePart, ...]) -> Any:
    if isinstance(content, str):
        return content

    parts: list[dict[str, Any]] = []
    for part in content:
        if isinstance(part, TextPart):
            parts.append({"type": "text", "text": part.text})
        else:
            parts.append({"type": "image_url", "image_url": {"url": part.url}})
    return parts


def coerce_mapping(value: Mapping[str, Any] | Any) -> Mapping[str, Any] | None:
    """Return ``value`` as a mapping, dumping SDK models, or ``None``."""

    if isinstance(value, Mapping):
        return value

    if hasattr(value, "model_dump"):
        dumped = value.model_dump()
        if isinstance(dumped, Mapping):
            return dumped

    return None
