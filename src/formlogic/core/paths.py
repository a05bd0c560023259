"""
Dot-path helpers for reading form values.

Paths use dot notation for nested objects and ``[n]`` for array items:
``shipping.address.city``, ``lineItems[0].sku``. Snapshots may be flat
(``{"shipping.cost": 5}``), nested (``{"shipping": {"cost": 5}}``), or a
mix of both; an exact flat key always wins over traversal.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import Any, Final


class _Missing:
    """Sentinel for a path with no value (distinct from an explicit None)."""

    _instance: _Missing | None = None

    def __new__(cls) -> _Missing:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Final = _Missing()

_SEGMENT_RE = re.compile(r"([^.\[\]]+)|\[(\d+)\]")


def split_path(path: str) -> list[str | int]:
    """Split ``a.b[0].c`` into ``["a", "b", 0, "c"]``."""
    segments: list[str | int] = []
    for name, index in _SEGMENT_RE.findall(path):
        if index:
            segments.append(int(index))
        else:
            segments.append(name)
    return segments


def join_path(parent: str | None, key: str) -> str:
    return f"{parent}.{key}" if parent else key


def last_segment(path: str) -> str:
    """The last named segment: ``order.price`` -> ``price``, ``items[0]`` -> ``items``."""
    for segment in reversed(split_path(path)):
        if isinstance(segment, str):
            return segment
    return path


def get_path(values: Mapping[str, Any], path: str) -> Any:
    """
    Read the value at ``path``.

    Returns:
        The value, or MISSING when any segment is absent.
    """
    if path in values:
        return values[path]

    current: Any = values
    for segment in split_path(path):
        if current is MISSING or current is None:
            return MISSING
        if isinstance(segment, int):
            if (
                isinstance(current, Sequence)
                and not isinstance(current, str)
                and 0 <= segment < len(current)
            ):
                current = current[segment]
            else:
                return MISSING
        elif isinstance(current, Mapping) and segment in current:
            current = current[segment]
        else:
            return MISSING
    return current


def is_empty(value: Any) -> bool:
    """Missing, None and the empty string are empty; 0 and False are not."""
    return value is MISSING or value is None or (isinstance(value, str) and value == "")
