"""
Parsed schema container for formlogic IR.

ParsedSchema is produced once per schema by the schema parser and is
read-only afterwards. It carries the flattened fields, lookup sets and
the precomputed calculation order.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .fields import CalculationSpec, FieldNode
from .rules import referenced_fields


class ParsedSchema(BaseModel):
    """Flattened, validated form schema."""

    schema_id: str | None = None
    fields: list[FieldNode] = Field(default_factory=list)
    calculations: list[CalculationSpec] = Field(
        default_factory=list, description="Calculations in declaration order"
    )
    evaluation_order: list[str] = Field(
        default_factory=list, description="Calculated targets in evaluation order"
    )
    raw: dict[str, Any] = Field(default_factory=dict, description="Original schema document")

    model_config = ConfigDict(frozen=True)

    @property
    def field_map(self) -> dict[str, FieldNode]:
        return {f.path: f for f in self.fields}

    @property
    def required_paths(self) -> frozenset[str]:
        """Paths that are statically required by the schema."""
        return frozenset(f.path for f in self.fields if f.is_required)

    @property
    def conditional_paths(self) -> frozenset[str]:
        """Paths that declare at least one visibility/required/read-only rule."""
        return frozenset(f.path for f in self.fields if f.is_conditional)

    @property
    def calculated_paths(self) -> frozenset[str]:
        return frozenset(c.target for c in self.calculations)

    def get_field(self, path: str) -> FieldNode | None:
        for node in self.fields:
            if node.path == path:
                return node
        return None

    def get_calculation(self, target: str) -> CalculationSpec | None:
        for calc in self.calculations:
            if calc.target == target:
                return calc
        return None

    def ordered_calculations(self) -> list[CalculationSpec]:
        """Calculations in evaluation order."""
        by_target = {c.target: c for c in self.calculations}
        return [by_target[t] for t in self.evaluation_order]

    def dependents_of(self, path: str) -> list[str]:
        """
        Fields whose rules or calculation read ``path`` or a child of it.

        Args:
            path: Field path that changed

        Returns:
            Dependent field paths in schema order
        """
        prefixes = (f"{path}.", f"{path}[")
        dependents: list[str] = []

        def _matches(ref: str) -> bool:
            return ref == path or ref.startswith(prefixes)

        calc_deps = {c.target: c.depends_on for c in self.calculations}
        for node in self.fields:
            refs: list[str] = []
            for rule in (node.hidden_when, node.required_when, node.read_only_when):
                refs.extend(referenced_fields(rule))
            refs.extend(calc_deps.get(node.path, []))
            if any(_matches(ref) for ref in refs):
                dependents.append(node.path)
        return dependents
