"""Build chat-completion request payloads for a Foundry deployment."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
import re
from typing import Any

from ...config import ReasoningEffort
from ..capabilities import CapabilityRecord
from ..errors import AdapterError
from ..message import Message
from .toolbridge import ToolSpec, tool_specs_to_openai
from .utils import messages_to_openai

DEFAULT_TEMPERATURE = 0.7
DEFAULT_REASONING_EFFORT = ReasoningEffort.MEDIUM

# o1/o3/o4 as a whole segment of the deployment id: "o1", "o3-mini",
# "team-o4-mini" but not "gpt-4o" or "o10".
_REASONING_FAMILY = re.compile(r"(?:^|[-_/.])o[134](?=$|[-_.])", re.IGNORECASE)
_FIXED_TEMPERATURE_FAMILY = re.compile(r"gpt-?5", re.IGNORECASE)


def is_reasoning_model(model_id: str, capabilities: CapabilityRecord | None = None) -> bool:
    """Whether ``model_id`` should be addressed as a reasoning-class model."""

    if capabilities is not None and capabilities.supports_reasoning:
        return True
    lowered = (model_id or "").lower()
    return bool(_REASONING_FAMILY.search(lowered)) and "chat" not in lowered


def has_fixed_temperature(model_id: str) -> bool:
    """Whether the deployment rejects any temperature other than its default."""

    return bool(_FIXED_TEMPERATURE_FAMILY.search(model_id or ""))


def prepare_tools(tools: Sequence[ToolSpec | Mapping[str, Any]] | None) -> list[dict[str, Any]] | None:
    """Normalize caller tools into the provider schema, or ``None`` when absent."""

    if tools is None:
        return None

    if isinstance(tools, Mapping) or not isinstance(tools, Sequence) or isinstance(tools, (str, bytes, bytearray)):
        msg = "tools must be a sequence of ToolSpec instances"
        raise AdapterError(msg)

    if not tools:
        return None

    specs = [tool if isinstance(tool, ToolSpec) else ToolSpec.from_mapping(tool) for tool in tools]
    return tool_specs_to_openai(specs)


def shape_request(
    system_prompt: str,
    messages: Sequence[Message],
    tools: Sequence[ToolSpec | Mapping[str, Any]] | None,
    capabilities: CapabilityRecord,
    model_id: str,
    reasoning_effort: ReasoningEffort | str | None = None,
) -> dict[str, Any]:
    """Return the keyword arguments for ``chat.completions.create``.

    Reasoning-class deployments receive the system prompt under the
    ``developer`` role plus a ``reasoning_effort`` (``medium`` unless given)
    and never a temperature. Fixed-temperature families also omit the
    temperature. Usage accounting is always requested on the stream.
    """

    if not model_id:
        msg = "a deployment id is required to shape a request"
        raise AdapterError(msg)

    reasoning = is_reasoning_model(model_id, capabilities)

    openai_messages: list[dict[str, Any]] = []
    if system_prompt:
        openai_messages.append({"role": "developer" if reasoning else "system", "content": system_prompt})
    openai_messages.extend(messages_to_openai(messages))

    payload: dict[str, Any] = {
        "model": model_id,
        "messages": openai_messages,
        "stream": True,
        "stream_options": {"include_usage": True},
    }

    if not reasoning and not has_fixed_temperature(model_id):
        payload["temperature"] = DEFAULT_TEMPERATURE

    if reasoning:
        effort = ReasoningEffort(reasoning_effort) if reasoning_effort else DEFAULT_REASONING_EFFORT
        payload["reasoning_effort"] = effort.value

    prepared_tools = prepare_tools(tools)
    if prepared_tools:
        payload["tools"] = prepared_tools
        payload["tool_choice"] = "auto"

    return payload


__all__ = [
    "DEFAULT_REASONING_EFFORT",
    "DEFAULT_TEMPERATURE",
    "has_fixed_temperature",
    "is_reasoning_model",
    "prepare_tools",
    "shape_request",
]
