"""Core formlogic functionality: IR, schema parsing, rule and formula evaluation, scheduling."""

from . import ir
from .conditions import evaluate_rule, is_hidden, is_read_only, is_required
from .config import EngineConfig, discover_config, load_config
from .engine import EvaluationResult, FieldState, FormEngine
from .errors import (
    ConfigError,
    CycleError,
    ErrorContext,
    FormLogicError,
    SchemaError,
)
from .formula_lang import evaluate_formula, parse_formula
from .rule_lang import parse_rule
from .scheduler import DependencyGraph, build_order
from .schema_loader import load_schema, load_values
from .schema_parser import default_values, infer_widget, parse_schema

__all__ = [
    "ir",
    # Errors
    "FormLogicError",
    "SchemaError",
    "CycleError",
    "ConfigError",
    "ErrorContext",
    # Config
    "EngineConfig",
    "discover_config",
    "load_config",
    # Parsing
    "parse_schema",
    "default_values",
    "infer_widget",
    "parse_rule",
    "parse_formula",
    "load_schema",
    "load_values",
    # Evaluation
    "evaluate_rule",
    "is_hidden",
    "is_required",
    "is_read_only",
    "evaluate_formula",
    "DependencyGraph",
    "build_order",
    "FormEngine",
    "EvaluationResult",
    "FieldState",
]
