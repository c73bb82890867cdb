"""Test harness utilities for adapter validation."""

from .adapter_harness import build_adapter, collect, collect_async, event_kinds

__all__ = [
    "build_adapter",
    "collect",
    "collect_async",
    "event_kinds",
]
