"""
formlogic - Form logic engine for schema-driven forms.

Decides, for any snapshot of form values, which fields are visible,
required and read-only, and computes calculated fields in a
dependency-safe order.
"""

from __future__ import annotations

from ._version import get_version
from .core import ir
from .core.engine import EvaluationResult, FieldState, FormEngine
from .core.errors import ConfigError, CycleError, FormLogicError, SchemaError
from .core.schema_parser import parse_schema

__version__ = get_version()

__all__ = [
    "__version__",
    "ir",
    "FormEngine",
    "EvaluationResult",
    "FieldState",
    "parse_schema",
    "FormLogicError",
    "SchemaError",
    "CycleError",
    "ConfigError",
]
