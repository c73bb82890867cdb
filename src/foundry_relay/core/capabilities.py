"""Static capability lookup for Foundry deployments."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, fields, replace
from types import MappingProxyType
from typing import Any


@dataclass(frozen=True, slots=True)
class CapabilityRecord:
    """What a deployment supports and what it costs per million tokens."""

    max_output_tokens: int
    context_window_tokens: int
    supports_images: bool = False
    supports_prompt_cache: bool = False
    supports_reasoning: bool = False
    input_price_per_mtok: float = 0.0
    output_price_per_mtok: float = 0.0

    def merged(self, overrides: Mapping[str, Any]) -> CapabilityRecord:
        """Return a copy with ``overrides`` applied on top of this record."""

        if not overrides:
            return self
        return replace(self, **dict(overrides))


CAPABILITY_FIELDS = frozenset(field.name for field in fields(CapabilityRecord))

DEFAULT_CAPABILITIES = CapabilityRecord(max_output_tokens=4096, context_window_tokens=128_000)


def _partial(
    max_output_tokens: int,
    context_window_tokens: int,
    *,
    images: bool = False,
    cache: bool = False,
    reasoning: bool = False,
    prices: tuple[float, float] = (0.0, 0.0),
) -> Mapping[str, Any]:
    entry: dict[str, Any] = {
        "max_output_tokens": max_output_tokens,
        "context_window_tokens": context_window_tokens,
        "supports_images": images,
        "supports_prompt_cache": cache,
        "input_price_per_mtok": prices[0],
        "output_price_per_mtok": prices[1],
    }
    if reasoning:
        entry["supports_reasoning"] = True
    return MappingProxyType(entry)


# Prefix matching walks this tuple in order, so a key must come before any
# shorter key that is also a prefix of it ("gpt-5.2-chat" before "gpt-5.2"
# before "gpt-5").
CAPABILITY_TABLE: tuple[tuple[str, Mapping[str, Any]], ...] = (
    ("gpt-5.2-chat", _partial(32_768, 256_000, images=True, cache=True, prices=(5.0, 20.0))),
    ("gpt-5.2", _partial(32_768, 256_000, images=True, cache=True, prices=(5.0, 20.0))),
    ("gpt-5-mini", _partial(32_768, 256_000, images=True, cache=True, prices=(1.0, 4.0))),
    ("gpt-5", _partial(32_768, 256_000, images=True, cache=True, prices=(5.0, 20.0))),
    ("gpt-4o-mini", _partial(16_384, 128_000, images=True, prices=(0.15, 0.6))),
    ("gpt-4o", _partial(16_384, 128_000, images=True, prices=(2.5, 10.0))),
    ("gpt-4.1-mini", _partial(32_768, 1_047_576, images=True, prices=(0.4, 1.6))),
    ("gpt-4.1-nano", _partial(32_768, 1_047_576, images=True, prices=(0.1, 0.4))),
    ("gpt-4.1", _partial(32_768, 1_047_576, images=True, prices=(2.0, 8.0))),
    ("gpt-4-turbo", _partial(4096, 128_000, images=True, prices=(10.0, 30.0))),
    ("gpt-4", _partial(8192, 128_000, prices=(30.0, 60.0))),
    ("gpt-35-turbo", _partial(4096, 16_385, prices=(0.5, 1.5))),
    ("o1-mini", _partial(65_536, 128_000, reasoning=True, prices=(3.0, 12.0))),
    ("o1-preview", _partial(32_768, 128_000, reasoning=True, prices=(15.0, 60.0))),
    ("o1-pro", _partial(100_000, 200_000, images=True, reasoning=True, prices=(150.0, 600.0))),
    ("o1", _partial(100_000, 200_000, images=True, reasoning=True, prices=(15.0, 60.0))),
    ("o3-mini", _partial(65_536, 200_000, reasoning=True, prices=(1.1, 4.4))),
    ("o3", _partial(100_000, 200_000, images=True, reasoning=True, prices=(10.0, 40.0))),
    ("o4-mini", _partial(65_536, 200_000, images=True, reasoning=True, prices=(1.1, 4.4))),
    ("claude-sonnet-4-5", _partial(8192, 200_000, images=True, cache=True, reasoning=True, prices=(3.0, 15.0))),
    ("claude-opus-4", _partial(8192, 200_000, images=True, cache=True, reasoning=True, prices=(15.0, 75.0))),
    ("claude-haiku-4", _partial(8192, 200_000, images=True, cache=True, prices=(0.8, 4.0))),
    ("Phi-4-mini", _partial(16_384, 128_000)),
    ("Phi-4-multimodal", _partial(16_384, 128_000, images=True)),
    ("Phi-4", _partial(16_384, 128_000)),
    ("Llama-3.3-70B", _partial(8192, 128_000)),
    ("Llama-4", _partial(8192, 128_000)),
    ("DeepSeek-V3", _partial(8192, 128_000)),
    ("mistral-medium", _partial(8192, 128_000)),
    ("grok-3", _partial(8192, 128_000)),
    ("grok-4", _partial(8192, 128_000)),
    ("grok", _partial(8192, 128_000)),
)

_EXACT: Mapping[str, Mapping[str, Any]] = MappingProxyType(dict(CAPABILITY_TABLE))


def resolve_capabilities(model_name: str) -> CapabilityRecord:
    """Look up the capability record for a deployment or model name.

    Exact names win; otherwise the first table key that prefixes
    ``model_name`` is used (``gpt-4o-2024-08-06`` resolves through
    ``gpt-4o``). Unknown names get :data:`DEFAULT_CAPABILITIES`. Never raises.
    """

    name = model_name if isinstance(model_name, str) else ""

    exact = _EXACT.get(name)
    if exact is not None:
        return DEFAULT_CAPABILITIES.merged(exact)

    for prefix, overrides in CAPABILITY_TABLE:
        if name.startswith(prefix):
            return DEFAULT_CAPABILITIES.merged(overrides)

    return DEFAULT_CAPABILITIES


__all__ = [
    "CAPABILITY_FIELDS",
    "CAPABILITY_TABLE",
    "CapabilityRecord",
    "DEFAULT_CAPABILITIES",
    "resolve_capabilities",
]
