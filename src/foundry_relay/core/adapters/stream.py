"""Canonical streaming event schema and base iterator primitives."""

from __future__ import annotations

import abc
import asyncio
import inspect
import logging
from collections import deque
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, AsyncIterator, Deque, List, Optional, Protocol, Union

from ..errors import MalformedChunkError

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class TextEvent:
    """Incremental assistant text."""

    delta: str


@dataclass(slots=True)
class ReasoningEvent:
    """Incremental reasoning/thinking text from reasoning-capable deployments."""

    delta: str


@dataclass(slots=True)
class ToolCallDeltaEvent:
    """A fragment applied to the tool call accumulating at ``index``."""

    index: int
    id_fragment: Optional[str] = None
    name_fragment: Optional[str] = None
    argument_fragment: str = ""


@dataclass(slots=True)
class ToolCallCompleteEvent:
    """A fully reassembled tool call.

    ``arguments`` is the decoded JSON object, or the raw argument string when
    the accumulated text is not a JSON object. ``raw_arguments`` always holds
    the verbatim concatenation of every fragment.
    """

    index: int
    id: Optional[str]
    name: Optional[str]
    arguments: Union[Mapping[str, Any], str]
    raw_arguments: str

    @property
    def is_malformed(self) -> bool:
        return isinstance(self.arguments, str)


@dataclass(slots=True)
class UsageEvent:
    """Token accounting for the request."""

    input_tokens: int
    output_tokens: int
    cache_read_tokens: int = 0
    cache_write_tokens: int = 0


StreamEvent = Union[TextEvent, ReasoningEvent, ToolCallDeltaEvent, ToolCallCompleteEvent, UsageEvent]


class StreamNormalizer(Protocol):
    async def normalize_chunk(self, chunk: Any) -> List[StreamEvent]:
        """Map a provider-specific chunk into canonical stream events."""

    async def finish(self) -> List[StreamEvent]:
        """Return the events still owed once the provider stream has ended."""


_END = object()
_CANCELLED = object()


class BaseStreamIterator(AsyncIterator[StreamEvent], metaclass=abc.ABCMeta):
    """Shared async iterator driving provider-specific streaming adapters.

    Subclasses source raw provider chunks by implementing
    :meth:`_get_next_chunk`, which raises ``StopAsyncIteration`` once the
    provider closes the stream. Each chunk is normalized into zero or more
    :class:`StreamEvent` instances via a :class:`StreamNormalizer`; the
    iterator buffers them so consumers pull one canonical event at a time no
    matter how the provider batches its updates.

    A chunk the normalizer rejects with :class:`MalformedChunkError` is logged
    and skipped. When ``cancel_event`` is set the pending read is abandoned,
    :attr:`cancelled` becomes true and iteration stops. Provider resources
    are released exactly once: on exhaustion, on error, on cancellation, or
    through :meth:`close` / ``async with``.
    """

    def __init__(self, normalizer: StreamNormalizer, *, cancel_event: asyncio.Event | None = None) -> None:
        self._normalizer = normalizer
        self._cancel_event = cancel_event
        self._buffer: Deque[StreamEvent] = deque()
        self._closed = False
        self._exhausted = False
        self._released = False
        self._close_lock = asyncio.Lock()
        self.cancelled = False

    def __aiter__(self) -> BaseStreamIterator:
        return self

    async def __aenter__(self) -> BaseStreamIterator:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def __anext__(self) -> StreamEvent:
        while True:
            if self._buffer:
                return self._buffer.popleft()

            if self._closed or self._exhausted:
                raise StopAsyncIteration

            try:
                chunk = await self._read_chunk()
            except BaseException:
                await self.close()
                raise

            if chunk is _CANCELLED:
                LOGGER.info("stream cancelled by caller")
                self.cancelled = True
                await self.close()
                raise StopAsyncIteration

            if chunk is _END:
                self._exhausted = True
                try:
                    self._buffer.extend(await self._normalizer.finish())
                finally:
                    await self._release()
                continue

            try:
                events = await self._normalizer.normalize_chunk(chunk)
            except MalformedChunkError as exc:
                LOGGER.warning("skipping malformed stream chunk: %s", exc)
                continue

            self._buffer.extend(events)

    async def close(self) -> None:
        """Release provider resources and prevent additional iteration."""

        async with self._close_lock:
            if self._closed:
                return

            self._closed = True
            self._buffer.clear()
            await self._release()

    aclose = close

    async def _release(self) -> None:
        if self._released:
            return
        self._released = True
        await self._on_close()

    async def _read_chunk(self) -> Any:
        if self._cancel_event is None:
            return await self._next_or_end()
        if self._cancel_event.is_set():
            return _CANCELLED

        read = asyncio.ensure_future(self._next_or_end())
        cancelled = asyncio.ensure_future(self._cancel_event.wait())
        try:
            done, _ = await asyncio.wait({read, cancelled}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            pending = [task for task in (read, cancelled) if not task.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        if cancelled in done:
            return _CANCELLED
        return read.result()

    async def _next_or_end(self) -> Any:
        try:
            return await self._get_next_chunk()
        except StopAsyncIteration:
            return _END

    @abc.abstractmethod
    async def _get_next_chunk(self) -> Any:
        """Retrieve the next raw chunk from the provider stream."""

    async def _on_close(self) -> None:
        """Allow subclasses to dispose provider resources when closing."""


async def replay_stream(iterator: AsyncIterator[StreamEvent]) -> List[StreamEvent]:
    """Collect all events emitted by a stream iterator."""

    events: List[StreamEvent] = []
    try:
        async for event in iterator:
            events.append(event)
    finally:
        await _close_iterator(iterator)
    return events


async def collect_text(events: AsyncIterator[StreamEvent]) -> str:
    """Concatenate the TextEvent deltas of a stream into a single string."""

    fragments: List[str] = []
    try:
        async for event in events:
            if isinstance(event, TextEvent):
                fragments.append(event.delta)
    finally:
        await _close_iterator(events)
    return "".join(fragments)


async def _close_iterator(events: Any) -> None:
    for closer_name in ("aclose", "close"):
        closer = getattr(events, closer_name, None)
        if closer is None or not callable(closer):
            continue
        result = closer()
        if inspect.isawaitable(result):
            await result
        return


__all__ = [
    "BaseStreamIterator",
    "ReasoningEvent",
    "StreamEvent",
    "StreamNormalizer",
    "TextEvent",
    "ToolCallCompleteEvent",
    "ToolCallDeltaEvent",
    "UsageEvent",
    "collect_text",
    "replay_stream",
]
