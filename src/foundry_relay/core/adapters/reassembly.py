"""Reassembly of tool calls streamed as indexed fragments."""

from __future__ import annotations

from dataclasses import dataclass, field
import json
import logging
from typing import Any

from .stream import StreamEvent, ToolCallCompleteEvent, ToolCallDeltaEvent

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ToolCallFragment:
    """One ``delta.tool_calls[]`` entry as sent by the provider."""

    index: int
    id: str | None = None
    name: str | None = None
    arguments: str | None = None


@dataclass(slots=True)
class PendingToolCall:
    """Accumulator for the tool call streaming at ``index``."""

    index: int
    call_id: str | None = None
    name: str | None = None
    argument_buffer: list[str] = field(default_factory=list)

    def apply(self, fragment: ToolCallFragment) -> ToolCallDeltaEvent:
        self.call_id = _merge_label(self.call_id, fragment.id)
        self.name = _merge_label(self.name, fragment.name)
        if fragment.arguments:
            self.argument_buffer.append(fragment.arguments)
        return ToolCallDeltaEvent(
            index=self.index,
            id_fragment=fragment.id or None,
            name_fragment=fragment.name or None,
            argument_fragment=fragment.arguments or "",
        )

    def complete(self) -> ToolCallCompleteEvent:
        raw = "".join(self.argument_buffer)
        if self.call_id is None or self.name is None:
            LOGGER.warning(
                "tool call at index %s completed without %s",
                self.index,
                "an id" if self.call_id is None else "a name",
            )
        return ToolCallCompleteEvent(
            index=self.index,
            id=self.call_id,
            name=self.name,
            arguments=self._parse_arguments(raw),
            raw_arguments=raw,
        )

    def _parse_arguments(self, raw: str) -> dict[str, Any] | str:
        if not raw.strip():
            return {}
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as exc:
            LOGGER.warning("tool call %s arguments are not valid JSON: %s", self.call_id or self.index, exc)
            return raw
        if not isinstance(parsed, dict):
            LOGGER.warning("tool call %s arguments are not a JSON object", self.call_id or self.index)
            return raw
        return parsed


def _merge_label(current: str | None, fragment: str | None) -> str | None:
    # Providers either send the id/name once, repeat it verbatim, or stream it
    # in pieces.
    if not fragment:
        return current
    if current is None:
        return fragment
    if fragment == current:
        return current
    return current + fragment


class ToolCallReassembler:
    """Turn indexed tool-call fragments into delta and completion events.

    A fragment for a new index closes every call still accumulating, in
    index order, before the new call opens. :meth:`finish` closes whatever is
    left when the provider stream ends. Each index completes at most once;
    fragments arriving for a completed index are dropped.
    """

    def __init__(self) -> None:
        self._open: dict[int, PendingToolCall] = {}
        self._completed: set[int] = set()

    @property
    def has_open_calls(self) -> bool:
        return bool(self._open)

    def feed(self, fragment: ToolCallFragment) -> list[StreamEvent]:
        if fragment.index in self._completed:
            LOGGER.warning("ignoring fragment for completed tool call at index %s", fragment.index)
            return []

        events: list[StreamEvent] = []
        pending = self._open.get(fragment.index)
        if pending is None:
            events.extend(self._close_open_calls())
            pending = PendingToolCall(index=fragment.index)
            self._open[fragment.index] = pending

        events.append(pending.apply(fragment))
        return events

    def finish(self) -> list[StreamEvent]:
        return self._close_open_calls()

    def _close_open_calls(self) -> list[StreamEvent]:
        events: list[StreamEvent] = []
        for index in sorted(self._open):
            events.append(self._open.pop(index).complete())
            self._completed.add(index)
        return events


__all__ = ["PendingToolCall", "ToolCallFragment", "ToolCallReassembler"]
