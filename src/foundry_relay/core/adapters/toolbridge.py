"""Tool definitions and their chat-completion wire shape."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
import json
import re
from typing import Any

from ..errors import AdapterError
from ..jsonvalue import freeze_json, thaw_json
from ..message import ToolCall

_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_-]{1,64}$")
_EMPTY_SCHEMA: Mapping[str, Any] = {"type": "object", "properties": {}}


@dataclass(frozen=True, slots=True)
class ToolSpec:
    """A function the model may call, described by a JSON object schema.

    ``parameters`` is validated and frozen on construction. A missing
    ``properties`` entry is filled in as ``{}``, and a blank description
    is dropped.
    """

    name: str
    parameters: Mapping[str, Any]
    description: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not _NAME_PATTERN.fullmatch(self.name):
            msg = "tool name must match ^[a-zA-Z0-9_-]{1,64}$"
            raise AdapterError(msg)
        if self.description is not None and not isinstance(self.description, str):
            msg = "tool description must be a string when provided"
            raise AdapterError(msg)
        if not isinstance(self.parameters, Mapping):
            msg = "tool parameters must be a mapping"
            raise AdapterError(msg)

        try:
            schema = thaw_json(freeze_json(self.parameters, path=f"ToolSpec('{self.name}').parameters"))
        except (TypeError, ValueError) as exc:
            raise AdapterError(str(exc)) from exc
        _check_object_schema(schema)

        object.__setattr__(self, "description", (self.description or "").strip() or None)
        object.__setattr__(self, "parameters", freeze_json(schema, path="parameters"))

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> ToolSpec:
        """Build a spec from ``{name, description, parameters}``.

        ``input_schema`` is accepted as an alias of ``parameters``, and an
        already-wrapped ``{"type": "function", "function": {...}}`` entry is
        unwrapped.
        """

        if not isinstance(payload, Mapping):
            msg = "tool definitions must be mappings"
            raise AdapterError(msg)

        body: Mapping[str, Any] = payload
        if payload.get("type") == "function" and isinstance(payload.get("function"), Mapping):
            body = payload["function"]

        parameters = body.get("parameters")
        if parameters is None:
            parameters = body.get("input_schema", _EMPTY_SCHEMA)
        return cls(name=body.get("name"), parameters=parameters, description=body.get("description"))

    def to_openai(self) -> dict[str, Any]:
        function: dict[str, Any] = {"name": self.name, "parameters": thaw_json(self.parameters)}
        if self.description is not None:
            function["description"] = self.description
        return {"type": "function", "function": function}


def _check_object_schema(schema: dict[str, Any]) -> None:
    if schema.get("type") != "object":
        msg = "tool parameters must describe a JSON object"
        raise AdapterError(msg)

    properties = schema.setdefault("properties", {})
    if not isinstance(properties, dict):
        msg = "tool parameters 'properties' must be a mapping"
        raise AdapterError(msg)

    required = schema.get("required", [])
    if not isinstance(required, list):
        msg = "tool parameter 'required' must be a list of strings"
        raise AdapterError(msg)
    for item in required:
        if not isinstance(item, str) or item not in properties:
            msg = f"required parameter {item!r} is not defined"
            raise AdapterError(msg)


def tool_specs_to_openai(tool_specs: Sequence[ToolSpec]) -> list[dict[str, Any]]:
    """Convert tool specifications to the chat-completion ``tools`` schema."""

    if isinstance(tool_specs, (str, bytes, bytearray)):
        msg = "tools must be provided as a sequence of ToolSpec instances"
        raise AdapterError(msg)

    specs = list(tool_specs)
    seen: set[str] = set()
    for index, spec in enumerate(specs):
        if not isinstance(spec, ToolSpec):
            msg = f"tools[{index}] must be a ToolSpec"
            raise AdapterError(msg)
        if spec.name in seen:
            msg = f"duplicate tool name '{spec.name}'"
            raise AdapterError(msg)
        seen.add(spec.name)

    return [spec.to_openai() for spec in specs]


def tool_call_to_openai(tool_call: ToolCall) -> dict[str, Any]:
    """Convert a ToolCall into the provider's assistant ``tool_calls`` entry."""

    return {
        "id": tool_call.id,
        "type": "function",
        "function": {
            "name": tool_call.name,
            "arguments": json.dumps(thaw_json(tool_call.arguments)),
        },
    }


__all__ = ["ToolSpec", "tool_call_to_openai", "tool_specs_to_openai"]
