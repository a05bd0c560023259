"""
Value coercion shared by the rule and formula evaluators.

Form values arrive from text inputs, so numbers are frequently strings.
These helpers decide when a value counts as a number and how equality
treats booleans (``True`` never equals ``1``).
"""

from __future__ import annotations

import math
from typing import Any


def is_number(value: Any) -> bool:
    """int or float, excluding bool."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def parse_number(text: str) -> int | float | None:
    """Parse a numeric string strictly; None when it is not a finite number."""
    stripped = text.strip()
    # int() and float() accept digit separators that form input must not
    if not stripped or "_" in stripped:
        return None
    try:
        return int(stripped)
    except ValueError:
        pass
    try:
        number = float(stripped)
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    return number


def to_number(value: Any) -> int | float | None:
    """Coerce numbers and numeric strings; anything else gives None."""
    if is_number(value):
        return value
    if isinstance(value, str):
        return parse_number(value)
    return None


def strict_equals(left: Any, right: Any) -> bool:
    """Equality that keeps booleans and numbers apart."""
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    try:
        return bool(left == right)
    except (TypeError, ValueError):
        return False


def strict_contains(items: list[Any], value: Any) -> bool:
    return any(strict_equals(item, value) for item in items)
