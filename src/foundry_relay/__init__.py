"""Streaming chat-completion adapter for Microsoft Foundry and Azure OpenAI.

:class:`FoundryAdapter` turns a system prompt, conversation history and tool
definitions into one canonical stream of text, reasoning, tool-call and usage
events. Authentication, request shaping, tool-call reassembly, error
classification and transient retries are handled inside the adapter.
"""

from __future__ import annotations

from .config import AuthMode, CloudEnvironment, ProviderConfig, ReasoningEffort
from .core import (
    AdapterError,
    CapabilityRecord,
    ClassifiedError,
    ErrorKind,
    ImagePart,
    Message,
    MessageRole,
    TextPart,
    ToolCall,
    ToolSpec,
    classify_error,
    resolve_capabilities,
)
from .core.adapters import (
    FoundryAdapter,
    ModelDescriptor,
    ReasoningEvent,
    RetryPolicy,
    StreamEvent,
    TextEvent,
    ToolCallCompleteEvent,
    ToolCallDeltaEvent,
    UsageEvent,
    collect_text,
    replay_stream,
)

__all__ = [
    "AdapterError",
    "AuthMode",
    "CapabilityRecord",
    "ClassifiedError",
    "CloudEnvironment",
    "ErrorKind",
    "FoundryAdapter",
    "ImagePart",
    "Message",
    "MessageRole",
    "ModelDescriptor",
    "ProviderConfig",
    "ReasoningEffort",
    "ReasoningEvent",
    "RetryPolicy",
    "StreamEvent",
    "TextEvent",
    "ToolCall",
    "ToolCallCompleteEvent",
    "ToolCallDeltaEvent",
    "ToolSpec",
    "UsageEvent",
    "classify_error",
    "collect_text",
    "replay_stream",
    "resolve_capabilities",
]

__version__ = "0.1.0"
