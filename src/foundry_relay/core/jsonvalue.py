"""Read-only JSON values carried by messages and tool definitions."""

from __future__ import annotations

from collections.abc import Mapping
import math
from types import MappingProxyType
from typing import Any


def freeze_json(value: Any, *, path: str) -> Any:
    """Validate ``value`` as JSON and return an immutable copy of it.

    Objects become :class:`~types.MappingProxyType` views and arrays become
    tuples. Object keys must be non-empty strings and floats must be finite;
    anything else raises :class:`TypeError` or :class:`ValueError` naming
    ``path``.
    """

    if value is None or isinstance(value, (str, bool, int)):
        return value

    if isinstance(value, float):
        if not math.isfinite(value):
            msg = f"{path} contains non-finite float values"
            raise ValueError(msg)
        return value

    if isinstance(value, Mapping):
        frozen: dict[str, Any] = {}
        for key, inner in value.items():
            if not isinstance(key, str) or not key:
                msg = f"{path} keys must be non-empty strings"
                raise TypeError(msg)
            frozen[key] = freeze_json(inner, path=f"{path}.{key}")
        return MappingProxyType(frozen)

    if isinstance(value, (list, tuple)):
        return tuple(freeze_json(item, path=f"{path}[{index}]") for index, item in enumerate(value))

    msg = f"{path} contains unsupported value type {type(value).__name__}"
    raise TypeError(msg)


def thaw_json(value: Any) -> Any:
    """Return a plain ``dict``/``list`` copy of a frozen JSON value."""

    if isinstance(value, Mapping):
        return {key: thaw_json(inner) for key, inner in value.items()}
    if isinstance(value, (list, tuple)):
        return [thaw_json(item) for item in value]
    return value
