"""Adapter interface shared by provider implementations."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from ..capabilities import CapabilityRecord
from ..message import Message
from .stream import StreamEvent
from .toolbridge import ToolSpec


@dataclass(frozen=True, slots=True)
class ModelDescriptor:
    """The deployment an adapter targets and what it can do."""

    id: str
    capabilities: CapabilityRecord


class ModelAdapter(ABC):
    """Abstract interface for provider-specific adapters."""

    @abstractmethod
    def create_message(
        self,
        system_prompt: str,
        messages: Sequence[Message],
        tools: Sequence[ToolSpec | Mapping[str, Any]] | None = None,
    ) -> AsyncIterator[StreamEvent]:
        """Stream canonical events for one assistant turn."""

    @abstractmethod
    def get_model(self) -> ModelDescriptor:
        """Describe the configured deployment."""
