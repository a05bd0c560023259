"""
Reactive orchestration.

FormEngine owns a parsed schema and its calculation order, and turns a
value snapshot into one EvaluationResult: computed values for calculated
fields plus visible/required/read-only flags for every field. It holds no
per-pass state, so callers may invoke ``recompute`` from any scheduling
model (UI events, timers, tests) and simply drop stale results.
"""

from __future__ import annotations

import logging
from collections import ChainMap
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from formlogic.core.conditions import is_hidden, is_read_only, is_required
from formlogic.core.config import EngineConfig, discover_config
from formlogic.core.formula_lang.evaluator import evaluate_calculation
from formlogic.core.ir.schema import ParsedSchema
from formlogic.core.paths import MISSING
from formlogic.core.scheduler import DependencyGraph
from formlogic.core.schema_loader import load_schema
from formlogic.core.schema_parser import parse_schema

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FieldState:
    """Dynamic flags for one field."""

    visible: bool = True
    required: bool = False
    read_only: bool = False


@dataclass(frozen=True)
class EvaluationResult:
    """
    Outcome of one evaluation pass.

    Attributes:
        fields: path -> FieldState for every field in the schema
        values: calculated target -> computed value (determinate results only)
        indeterminate: calculated targets with no value available
    """

    fields: Mapping[str, FieldState] = field(default_factory=dict)
    values: Mapping[str, Any] = field(default_factory=dict)
    indeterminate: frozenset[str] = frozenset()

    @property
    def hidden_paths(self) -> frozenset[str]:
        return frozenset(p for p, s in self.fields.items() if not s.visible)

    @property
    def required_paths(self) -> frozenset[str]:
        """Required fields, including hidden ones."""
        return frozenset(p for p, s in self.fields.items() if s.required)

    @property
    def effective_required_paths(self) -> frozenset[str]:
        """Required fields that are currently visible."""
        return frozenset(p for p, s in self.fields.items() if s.required and s.visible)

    @property
    def read_only_paths(self) -> frozenset[str]:
        return frozenset(p for p, s in self.fields.items() if s.read_only)

    def value_of(self, target: str) -> Any:
        """Computed value of a calculated field, or None when indeterminate."""
        return self.values.get(target)

    def merged(self, snapshot: Mapping[str, Any]) -> dict[str, Any]:
        """A new flat mapping: the snapshot with computed values applied."""
        merged = dict(snapshot)
        merged.update(self.values)
        for target in self.indeterminate:
            merged.pop(target, None)
        return merged


class FormEngine:
    """Evaluates a parsed schema against value snapshots."""

    def __init__(self, parsed: ParsedSchema, config: EngineConfig | None = None) -> None:
        self.parsed = parsed
        self.config = config or EngineConfig()
        self._calculations = parsed.ordered_calculations()
        self._graph = DependencyGraph(parsed.calculations)

    @classmethod
    def from_schema(
        cls, schema: Mapping[str, Any], config: EngineConfig | None = None
    ) -> FormEngine:
        """Parse a raw schema and build an engine for it."""
        config = config or EngineConfig()
        return cls(parse_schema(schema, config), config)

    @classmethod
    def from_file(cls, path: Path, config: EngineConfig | None = None) -> FormEngine:
        """
        Load a JSON/YAML schema file and build an engine for it.

        Without an explicit config, ``formlogic.toml`` / ``[tool.formlogic]`` is
        looked up from the schema's directory.
        """
        config = config or discover_config(path.parent)
        return cls.from_schema(load_schema(path), config)

    @property
    def evaluation_order(self) -> list[str]:
        return list(self.parsed.evaluation_order)

    def recompute(self, snapshot: Mapping[str, Any]) -> EvaluationResult:
        """
        Run one evaluation pass.

        Calculated fields are evaluated in order over the snapshot overlaid
        with values computed earlier in the same pass. An indeterminate
        result masks its target so later formulas never see a stale value.
        Flags are then evaluated for every field against the same overlay.

        Args:
            snapshot: Current form values; never modified

        Returns:
            EvaluationResult for this snapshot
        """
        computed: dict[str, Any] = {}
        working: ChainMap[str, Any] = ChainMap(computed, snapshot)  # type: ignore[arg-type]
        values: dict[str, Any] = {}
        indeterminate: set[str] = set()

        for calc in self._calculations:
            result = evaluate_calculation(calc, working, round_half=self.config.round_half)
            if result is None:
                computed[calc.target] = MISSING
                indeterminate.add(calc.target)
            else:
                computed[calc.target] = result
                values[calc.target] = result

        states: dict[str, FieldState] = {}
        for node in self.parsed.fields:
            states[node.path] = FieldState(
                visible=not is_hidden(node.hidden_when, working),
                required=node.is_required or is_required(node.required_when, working),
                read_only=node.is_read_only or is_read_only(node.read_only_when, working),
            )

        if indeterminate:
            logger.debug(f"Indeterminate calculations: {sorted(indeterminate)}")
        return EvaluationResult(
            fields=states,
            values=values,
            indeterminate=frozenset(indeterminate),
        )

    def affected_calculations(self, changed_paths: Iterable[str]) -> list[str]:
        """Calculated targets whose value may change when ``changed_paths`` change."""
        return self._graph.affected_by(changed_paths)

    @staticmethod
    def diff(previous: EvaluationResult | None, current: EvaluationResult) -> list[str]:
        """
        Paths whose flags or computed values differ between two results.

        A missing ``previous`` reports every path in ``current``.
        """
        if previous is None:
            return sorted(set(current.fields) | set(current.values) | current.indeterminate)

        changed: set[str] = set()
        for path in set(previous.fields) | set(current.fields):
            if previous.fields.get(path) != current.fields.get(path):
                changed.add(path)

        prev_targets = set(previous.values) | previous.indeterminate
        curr_targets = set(current.values) | current.indeterminate
        for target in prev_targets | curr_targets:
            before = (target in previous.values, previous.values.get(target))
            after = (target in current.values, current.values.get(target))
            if before != after:
                changed.add(target)
        return sorted(changed)
