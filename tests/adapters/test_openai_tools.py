from __future__ import annotations

import pytest

from foundry_relay.core import AdapterError, ToolCall
from foundry_relay.core.adapters.toolbridge import ToolSpec, tool_call_to_openai, tool_specs_to_openai


def build_weather_spec() -> ToolSpec:
    return ToolSpec(
        name="get_weather",
        description="  Return weather observations for a location  ",
        parameters={
            "type": "object",
            "properties": {
                "location": {"type": "string", "description": "City name to resolve"},
                "unit": {"type": "string", "enum": ["celsius", "fahrenheit"]},
            },
            "required": ["location"],
        },
    )


def test_tool_spec_mapping_preserves_schema() -> None:
    [payload] = tool_specs_to_openai([build_weather_spec()])

    assert payload == {
        "type": "function",
        "function": {
            "name": "get_weather",
            "description": "Return weather observations for a location",
            "parameters": {
                "type": "object",
                "properties": {
                    "location": {"type": "string", "description": "City name to resolve"},
                    "unit": {"type": "string", "enum": ["celsius", "fahrenheit"]},
                },
                "required": ["location"],
            },
        },
    }


def test_blank_description_is_omitted() -> None:
    spec = ToolSpec(name="noop", parameters={"type": "object"}, description="   ")

    [payload] = tool_specs_to_openai([spec])

    assert "description" not in payload["function"]
    assert payload["function"]["parameters"] == {"type": "object", "properties": {}}


@pytest.mark.parametrize(
    "kwargs, message",
    [
        ({"name": "bad name", "parameters": {"type": "object"}}, "tool name"),
        ({"name": "f", "parameters": {"type": "array"}}, "JSON object"),
        ({"name": "f", "parameters": {"type": "object", "properties": [], "required": []}}, "properties"),
        ({"name": "f", "parameters": {"type": "object", "properties": {}, "required": ["x"]}}, "not defined"),
        ({"name": "f", "parameters": {"type": "object", "default": float("inf")}}, "non-finite"),
    ],
)
def test_invalid_specs_raise_adapter_error(kwargs: dict, message: str) -> None:
    with pytest.raises(AdapterError, match=message):
        ToolSpec(**kwargs)


def test_from_mapping_unwraps_function_entries() -> None:
    spec = ToolSpec.from_mapping(
        {
            "type": "function",
            "function": {"name": "sum", "parameters": {"type": "object", "properties": {"a": {"type": "number"}}}},
        }
    )

    assert spec.name == "sum"
    assert spec.description is None
    assert spec.parameters["properties"]["a"]["type"] == "number"


def test_from_mapping_defaults_to_empty_object_schema() -> None:
    spec = ToolSpec.from_mapping({"name": "ping"})

    assert dict(spec.parameters) == {"type": "object", "properties": {}}


def test_duplicate_names_are_rejected() -> None:
    with pytest.raises(AdapterError, match="duplicate"):
        tool_specs_to_openai([build_weather_spec(), build_weather_spec()])


def test_non_spec_entries_are_rejected() -> None:
    with pytest.raises(AdapterError, match=r"tools\[0\]"):
        tool_specs_to_openai([{"name": "raw"}])  # type: ignore[list-item]


def test_tool_call_serializes_arguments_as_json() -> None:
    call = ToolCall(id="call_9", name="sum", arguments={"a": 1, "b": [2, 3]})

    assert tool_call_to_openai(call) == {
        "id": "call_9",
        "type": "function",
        "function": {"name": "sum", "arguments": '{"a": 1, "b": [2, 3]}'},
    }
