"""Microsoft Foundry / Azure OpenAI adapter with streaming chat completions."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import AsyncIterator, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Callable

from ...config import ProviderConfig
from ..capabilities import CapabilityRecord, resolve_capabilities
from ..errors import AdapterError, ClassifiedError, ErrorKind, MalformedChunkError, classify_error
from ..message import Message
from .base import ModelAdapter, ModelDescriptor
from .credentials import ClientProvisioner
from .reassembly import ToolCallFragment, ToolCallReassembler
from .retry import RetryPolicy
from .shaping import shape_request
from .stream import (
    BaseStreamIterator,
    ReasoningEvent,
    StreamEvent,
    StreamNormalizer,
    TextEvent,
    UsageEvent,
)
from .toolbridge import ToolSpec
from .utils import coerce_mapping

LOGGER = logging.getLogger(__name__)


async def create_chat_stream(client: Any, payload: Mapping[str, Any]) -> Any:
    """Open a streaming chat completion using the provided client."""

    result = client.chat.completions.create(**payload)
    if inspect.isawaitable(result):
        result = await result
    return result


@dataclass(frozen=True, slots=True)
class _ChunkView:
    """The parts of one chunk the normalizer acts on, validated up front."""

    text: str | None
    reasoning: str | None
    tool_fragments: tuple[ToolCallFragment, ...]
    usage: UsageEvent | None


def _parse_chunk(chunk: Any) -> _ChunkView:
    mapping = coerce_mapping(chunk)
    if mapping is None:
        msg = f"stream chunk of type {type(chunk).__name__} is not a mapping"
        raise MalformedChunkError(msg)

    delta = _extract_delta(mapping)
    text = _optional_str(delta.get("content"), path="delta.content")
    reasoning = _optional_str(delta.get("reasoning_content"), path="delta.reasoning_content")
    if reasoning is None:
        reasoning = _optional_str(delta.get("reasoning"), path="delta.reasoning")

    return _ChunkView(
        text=text or None,
        reasoning=reasoning or None,
        tool_fragments=_extract_tool_fragments(delta.get("tool_calls")),
        usage=_extract_usage(mapping.get("usage")),
    )


def _extract_delta(chunk: Mapping[str, Any]) -> Mapping[str, Any]:
    choices = chunk.get("choices")
    if choices is None:
        return {}
    if not isinstance(choices, Sequence) or isinstance(choices, (str, bytes, bytearray)):
        msg = "chunk choices must be a sequence"
        raise MalformedChunkError(msg)
    if not choices:
        return {}

    choice = coerce_mapping(choices[0])
    if choice is None:
        msg = "choices[0] must be a mapping"
        raise MalformedChunkError(msg)

    delta = choice.get("delta")
    if delta is None:
        return {}
    delta_mapping = coerce_mapping(delta)
    if delta_mapping is None:
        msg = "choices[0].delta must be a mapping"
        raise MalformedChunkError(msg)
    return delta_mapping


def _optional_str(value: Any, *, path: str) -> str | None:
    if value is None or isinstance(value, str):
        return value
    msg = f"{path} must be a string"
    raise MalformedChunkError(msg)


def _extract_tool_fragments(payload: Any) -> tuple[ToolCallFragment, ...]:
    if payload is None:
        return ()
    if not isinstance(payload, Sequence) or isinstance(payload, (str, bytes, bytearray)):
        msg = "delta.tool_calls must be a sequence"
        raise MalformedChunkError(msg)

    fragments: list[ToolCallFragment] = []
    for position, item in enumerate(payload):
        path = f"delta.tool_calls[{position}]"
        mapping = coerce_mapping(item)
        if mapping is None:
            msg = f"{path} must be a mapping"
            raise MalformedChunkError(msg)

        index = mapping.get("index")
        if isinstance(index, bool) or not isinstance(index, int) or index < 0:
            msg = f"{path} is missing a non-negative integer index"
            raise MalformedChunkError(msg)

        function_payload = mapping.get("function")
        function = {} if function_payload is None else coerce_mapping(function_payload)
        if function is None:
            msg = f"{path}.function must be a mapping"
            raise MalformedChunkError(msg)

        fragments.append(
            ToolCallFragment(
                index=index,
                id=_optional_str(mapping.get("id"), path=f"{path}.id"),
                name=_optional_str(function.get("name"), path=f"{path}.function.name"),
                arguments=_optional_str(function.get("arguments"), path=f"{path}.function.arguments"),
            )
        )
    return tuple(fragments)


def _extract_usage(payload: Any) -> UsageEvent | None:
    if payload is None:
        return None
    usage = coerce_mapping(payload)
    if usage is None:
        msg = "usage must be a mapping"
        raise MalformedChunkError(msg)

    details = usage.get("prompt_tokens_details")
    details_mapping = coerce_mapping(details) if details is not None else {}
    if details_mapping is None:
        msg = "usage.prompt_tokens_details must be a mapping"
        raise MalformedChunkError(msg)

    return UsageEvent(
        input_tokens=_token_count(usage, "prompt_tokens", "input_tokens"),
        output_tokens=_token_count(usage, "completion_tokens", "output_tokens"),
        cache_read_tokens=(
            _token_count(details_mapping, "cached_tokens") or _token_count(usage, "cache_read_input_tokens")
        ),
        cache_write_tokens=_token_count(usage, "cache_creation_input_tokens"),
    )


def _token_count(usage: Mapping[str, Any], *names: str) -> int:
    for name in names:
        value = usage.get(name)
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            msg = f"usage.{name} must be a non-negative integer"
            raise MalformedChunkError(msg)
        return value
    return 0


class ChatCompletionNormalizer(StreamNormalizer):
    """Normalize chat-completion chunks into canonical events.

    Tool-call fragments are handed to a :class:`ToolCallReassembler`. Usage
    is remembered rather than emitted, so exactly one :class:`UsageEvent`
    with the last accounting seen follows the flushed tool calls once the
    stream ends.
    """

    def __init__(self, reassembler: ToolCallReassembler | None = None) -> None:
        self._reassembler = reassembler or ToolCallReassembler()
        self._usage: UsageEvent | None = None
        self._finished = False

    async def normalize_chunk(self, chunk: Any) -> list[StreamEvent]:
        if self._finished:
            return []

        view = _parse_chunk(chunk)
        events: list[StreamEvent] = []
        if view.text is not None:
            events.append(TextEvent(delta=view.text))
        if view.reasoning is not None:
            events.append(ReasoningEvent(delta=view.reasoning))
        for fragment in view.tool_fragments:
            events.extend(self._reassembler.feed(fragment))
        if view.usage is not None:
            self._usage = view.usage
        return events

    async def finish(self) -> list[StreamEvent]:
        if self._finished:
            return []
        self._finished = True

        events = self._reassembler.finish()
        if self._usage is not None:
            events.append(self._usage)
        return events


class ChatCompletionStream(BaseStreamIterator):
    """Stream iterator that converts chat-completion chunks into canonical events."""

    def __init__(
        self,
        stream: Any,
        *,
        normalizer: StreamNormalizer | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> None:
        self._stream = stream
        self._iterator = self._coerce_async_iterator(stream)
        super().__init__(normalizer or ChatCompletionNormalizer(), cancel_event=cancel_event)

    async def _get_next_chunk(self) -> Any:
        chunk = await self._iterator.__anext__()
        LOGGER.debug("received stream chunk %r", chunk)
        return chunk

    async def _on_close(self) -> None:
        for closer_name in ("aclose", "close"):
            closer = getattr(self._stream, closer_name, None)
            if closer is None:
                continue
            result = closer()
            if inspect.isawaitable(result):
                await result
            return

    def _coerce_async_iterator(self, stream: Any) -> Any:
        iterator_factory = getattr(stream, "__aiter__", None)
        if iterator_factory is None or not callable(iterator_factory):
            msg = "provider stream must support async iteration"
            raise AdapterError(msg)
        iterator = iterator_factory()
        if not hasattr(iterator, "__anext__"):
            msg = "provider stream iterator must define '__anext__'"
            raise AdapterError(msg)
        return iterator


class FoundryAdapter(ModelAdapter):
    """Stream assistant turns from a Microsoft Foundry / Azure OpenAI deployment.

    One client is provisioned lazily and reused across requests until
    :meth:`update_config` replaces the configuration. Each request snapshots
    the configuration and owns a fresh normalizer and reassembler.
    """

    def __init__(
        self,
        config: ProviderConfig,
        *,
        provisioner: ClientProvisioner | None = None,
        retry_policy: RetryPolicy | None = None,
        client_factory: Callable[..., Any] | None = None,
        credential_factory: Callable[[], Any] | None = None,
        token_provider_factory: Callable[[Any, str], Any] | None = None,
    ) -> None:
        self._config = config
        self._provisioner = provisioner or ClientProvisioner(
            config,
            client_factory=client_factory,
            credential_factory=credential_factory,
            token_provider_factory=token_provider_factory,
        )
        self._retry_policy = retry_policy or RetryPolicy()

    @property
    def config(self) -> ProviderConfig:
        return self._config

    async def update_config(self, config: ProviderConfig) -> None:
        """Switch configuration and drop the cached client."""

        self._config = config
        await self._provisioner.reset(config)

    async def aclose(self) -> None:
        await self._provisioner.aclose()

    def get_model(self) -> ModelDescriptor:
        config = self._config
        return ModelDescriptor(id=config.deployment_id or "", capabilities=self._capabilities(config))

    async def create_message(
        self,
        system_prompt: str,
        messages: Sequence[Message],
        tools: Sequence[ToolSpec | Mapping[str, Any]] | None = None,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> AsyncIterator[StreamEvent]:
        """Yield canonical events for one assistant turn as they arrive.

        Opening the stream and producing its first event are retried on
        transient failures; once an event has been yielded, failures are
        raised to the caller. Every provider failure surfaces as a
        :class:`ClassifiedError`. The provider stream is closed when the
        caller stops iterating.
        """

        config = self._config

        async def open_stream() -> tuple[ChatCompletionStream, StreamEvent | None]:
            return await self._open_stream(config, system_prompt, messages, tools, cancel_event)

        try:
            stream, first = await self._retry_policy.run(open_stream)
        except ClassifiedError as exc:
            LOGGER.error("Microsoft Foundry request failed (%s): %s", exc.kind.value, exc.message)
            raise

        try:
            if first is not None:
                yield first
            while True:
                try:
                    event = await stream.__anext__()
                except StopAsyncIteration:
                    break
                except Exception as exc:
                    classified = self._classify(exc, config)
                    LOGGER.error("Microsoft Foundry stream failed (%s): %s", classified.kind.value, classified.message)
                    raise classified from exc
                yield event
        finally:
            await stream.close()

    async def _open_stream(
        self,
        config: ProviderConfig,
        system_prompt: str,
        messages: Sequence[Message],
        tools: Sequence[ToolSpec | Mapping[str, Any]] | None,
        cancel_event: asyncio.Event | None,
    ) -> tuple[ChatCompletionStream, StreamEvent | None]:
        client = self._provisioner.ensure_client()

        deployment_id = config.deployment_id
        if not deployment_id:
            msg = "No deployment selected. Select a deployment in the Microsoft Foundry provider settings."
            raise ClassifiedError(ErrorKind.CONFIGURATION, msg)

        payload = shape_request(
            system_prompt,
            messages,
            tools,
            self._capabilities(config),
            deployment_id,
            config.reasoning_effort,
        )

        try:
            raw_stream = await create_chat_stream(client, payload)
        except Exception as exc:
            raise self._classify(exc, config) from exc

        stream = ChatCompletionStream(raw_stream, cancel_event=cancel_event)
        try:
            first = await stream.__anext__()
        except StopAsyncIteration:
            return stream, None
        except Exception as exc:
            await stream.close()
            raise self._classify(exc, config) from exc
        return stream, first

    def _capabilities(self, config: ProviderConfig) -> CapabilityRecord:
        return resolve_capabilities(config.deployment_id or "").merged(config.capability_overrides)

    def _classify(self, error: BaseException, config: ProviderConfig) -> ClassifiedError:
        return classify_error(error, auth_mode=config.auth_mode, deployment_id=config.deployment_id)


__all__ = [
    "ChatCompletionNormalizer",
    "ChatCompletionStream",
    "FoundryAdapter",
    "create_chat_stream",
]
