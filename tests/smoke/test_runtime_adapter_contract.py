from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Sequence

import pytest

from foundry_relay.core.adapters import (
    FoundryAdapter,
    ModelAdapter,
    StreamEvent,
    TextEvent,
    ToolCallCompleteEvent,
    UsageEvent,
)
from foundry_relay.core.message import Message, MessageRole

from tests.fixtures import openai_fake
from tests.harness import build_adapter


class _RuntimeStub:
    """Drives one turn and stops as soon as a tool call is ready to run."""

    def __init__(self, adapter: ModelAdapter, messages: Sequence[Message]) -> None:
        self._adapter = adapter
        self._messages = tuple(messages)
        self._events: AsyncIterator[StreamEvent] | None = None
        self.closed = False

    async def run_until_tool_call(self) -> list[StreamEvent]:
        self._events = self._adapter.create_message("You are a calculator.", self._messages)
        seen: list[StreamEvent] = []
        try:
            async for event in self._events:
                seen.append(event)
                if isinstance(event, ToolCallCompleteEvent):
                    break
        finally:
            await self._events.aclose()
            self.closed = True
        return seen


def _user_message(content: str) -> Message:
    return Message(role=MessageRole.USER, content=content)


def test_foundry_adapter_satisfies_model_adapter_contract() -> None:
    adapter, _ = build_adapter(openai_fake.build_scripted_client([]))

    assert isinstance(adapter, ModelAdapter)
    assert isinstance(adapter, FoundryAdapter)


def test_incomplete_adapters_cannot_be_instantiated() -> None:
    class _HalfAdapter(ModelAdapter):
        def get_model(self):  # type: ignore[override]
            raise NotImplementedError

    with pytest.raises(TypeError):
        _HalfAdapter()  # type: ignore[abstract]


def test_runtime_stub_stops_on_tool_call_and_releases_stream() -> None:
    client, stream = openai_fake.build_streaming_client(openai_fake.tool_call_chunks())
    adapter, _ = build_adapter(client)
    runtime = _RuntimeStub(adapter, [_user_message("calculate 1 + 3")])

    events = asyncio.run(runtime.run_until_tool_call())

    assert isinstance(events[0], TextEvent)
    final = events[-1]
    assert isinstance(final, ToolCallCompleteEvent)
    assert final.name == "sum"
    assert dict(final.arguments) == {"a": 1, "b": 3}
    assert not any(isinstance(event, UsageEvent) for event in events)

    assert runtime.closed is True
    assert stream.closed is True
