"""Adapter interfaces and the Microsoft Foundry implementation."""

from __future__ import annotations

from .base import ModelAdapter, ModelDescriptor
from .credentials import ClientProvisioner, normalize_scope, resolve_audience_scope
from .foundry import ChatCompletionNormalizer, ChatCompletionStream, FoundryAdapter, create_chat_stream
from .reassembly import PendingToolCall, ToolCallFragment, ToolCallReassembler
from .retry import RetryPolicy
from .shaping import has_fixed_temperature, is_reasoning_model, prepare_tools, shape_request
from .stream import (
    BaseStreamIterator,
    ReasoningEvent,
    StreamEvent,
    StreamNormalizer,
    TextEvent,
    ToolCallCompleteEvent,
    ToolCallDeltaEvent,
    UsageEvent,
    collect_text,
    replay_stream,
)
from .toolbridge import ToolSpec, tool_specs_to_openai
from .utils import messages_to_openai

__all__ = [
    "BaseStreamIterator",
    "ChatCompletionNormalizer",
    "ChatCompletionStream",
    "ClientProvisioner",
    "FoundryAdapter",
    "ModelAdapter",
    "ModelDescriptor",
    "PendingToolCall",
    "ReasoningEvent",
    "RetryPolicy",
    "StreamEvent",
    "StreamNormalizer",
    "TextEvent",
    "ToolCallCompleteEvent",
    "ToolCallDeltaEvent",
    "ToolCallFragment",
    "ToolCallReassembler",
    "ToolSpec",
    "UsageEvent",
    "collect_text",
    "create_chat_stream",
    "has_fixed_temperature",
    "is_reasoning_model",
    "messages_to_openai",
    "normalize_scope",
    "prepare_tools",
    "replay_stream",
    "resolve_audience_scope",
    "shape_request",
    "tool_specs_to_openai",
]
