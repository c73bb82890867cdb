"""Message schema shared across adapters."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from .jsonvalue import freeze_json


class MessageRole(str, Enum):
    """Canonical role names supported by the adapters."""

    SYSTEM = "system"
    DEVELOPER = "developer"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


@dataclass(frozen=True, slots=True)
class TextPart:
    """Plain text segment of a multi-part message."""

    text: str

    def __post_init__(self) -> None:
        if not isinstance(self.text, str):
            msg = "text part must be a string"
            raise TypeError(msg)


@dataclass(frozen=True, slots=True)
class ImagePart:
    """Image attached to a message, either base64 data or a URL."""

    data: str
    media_type: str = "image/png"

    def __post_init__(self) -> None:
        if not isinstance(self.data, str) or not self.data:
            msg = "image data must be a non-empty string"
            raise ValueError(msg)

    @property
    def url(self) -> str:
        if self.data.startswith(("http://", "https://", "data:")):
            return self.data
        return f"data:{self.media_type};base64,{self.data}"


ContentPart = Union[TextPart, ImagePart]


@dataclass(frozen=True, slots=True)
class ToolCall:
    """A function invocation the assistant made in an earlier turn."""

    id: str
    name: str
    arguments: Mapping[str, Any]

    def __post_init__(self) -> None:
        for label, value in (("id", self.id), ("name", self.name)):
            if not isinstance(value, str) or not value:
                msg = f"tool call {label} must be a non-empty string"
                raise ValueError(msg)
        if not isinstance(self.arguments, Mapping):
            msg = "tool call arguments must be a mapping"
            raise TypeError(msg)
        object.__setattr__(self, "arguments", freeze_json(self.arguments, path="ToolCall.arguments"))


@dataclass(frozen=True, slots=True)
class Message:
    """A single message in the conversation history sent to a model.

    ``content`` is either a string or a sequence of :class:`TextPart` /
    :class:`ImagePart` values. Assistant messages may carry ``tool_calls``;
    tool messages must reference the call they answer via ``tool_call_id``.
    """

    role: MessageRole
    content: str | tuple[ContentPart, ...]
    tool_calls: tuple[ToolCall, ...] | None = None
    tool_call_id: str | None = None

    def __post_init__(self) -> None:
        role = MessageRole(self.role)
        object.__setattr__(self, "role", role)
        object.__setattr__(self, "content", _content_parts(self.content))
        if self.tool_calls is not None:
            object.__setattr__(self, "tool_calls", _assistant_tool_calls(role, self.tool_calls))

        if role is MessageRole.TOOL and (not isinstance(self.tool_call_id, str) or not self.tool_call_id):
            msg = "tool messages require a tool_call_id"
            raise ValueError(msg)
        if role is not MessageRole.TOOL and self.tool_call_id is not None:
            msg = "tool_call_id is only valid on tool messages"
            raise ValueError(msg)

        if not self.content and self.tool_calls is None:
            msg = "message content cannot be empty when no tool calls are present"
            raise ValueError(msg)


def _content_parts(content: Any) -> str | tuple[ContentPart, ...]:
    if isinstance(content, str):
        return content
    if not isinstance(content, Sequence) or isinstance(content, (bytes, bytearray)):
        msg = "message content must be a string or a sequence of content parts"
        raise TypeError(msg)
    parts = tuple(content)
    if not all(isinstance(part, (TextPart, ImagePart)) for part in parts):
        msg = "message content parts must be TextPart or ImagePart instances"
        raise TypeError(msg)
    return parts


def _assistant_tool_calls(role: MessageRole, tool_calls: Any) -> tuple[ToolCall, ...]:
    if role is not MessageRole.ASSISTANT:
        msg = "only assistant messages may carry tool_calls"
        raise ValueError(msg)
    if not isinstance(tool_calls, Sequence) or isinstance(tool_calls, (str, bytes, bytearray)):
        msg = "tool_calls must be a sequence of ToolCall instances"
        raise TypeError(msg)
    calls = tuple(tool_calls)
    if not calls:
        msg = "tool_calls cannot be empty"
        raise ValueError(msg)
    if not all(isinstance(call, ToolCall) for call in calls):
        msg = "tool_calls must contain ToolCall instances"
        raise TypeError(msg)
    return calls
