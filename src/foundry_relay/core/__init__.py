"""Core data structures and adapter interfaces for foundry_relay."""

from __future__ import annotations

from .capabilities import CapabilityRecord, resolve_capabilities
from .errors import AdapterError, ClassifiedError, ErrorKind, classify_error
from .message import ImagePart, Message, MessageRole, TextPart, ToolCall
from .adapters.toolbridge import ToolSpec

__all__ = [
    "AdapterError",
    "CapabilityRecord",
    "ClassifiedError",
    "ErrorKind",
    "ImagePart",
    "Message",
    "MessageRole",
    "TextPart",
    "ToolCall",
    "ToolSpec",
    "classify_error",
    "resolve_capabilities",
]
