"""
Rule tree types for formlogic IR.

Rules gate a field's visibility, required state and read-only state.
A rule is either a single comparison against another field's value or
an AND/OR combination of rules.
"""

from __future__ import annotations

import json
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class RuleOperator(StrEnum):
    """Comparison operators, using their wire names."""

    EQUALS = "equals"
    NOT_EQUALS = "notEquals"
    IN = "in"
    NOT_IN = "notIn"
    GREATER_THAN = "greaterThan"
    GREATER_THAN_OR_EQUAL = "greaterThanOrEqual"
    LESS_THAN = "lessThan"
    LESS_THAN_OR_EQUAL = "lessThanOrEqual"
    IS_EMPTY = "isEmpty"
    IS_NOT_EMPTY = "isNotEmpty"

    @property
    def takes_value(self) -> bool:
        """isEmpty / isNotEmpty ignore the comparison value."""
        return self not in (RuleOperator.IS_EMPTY, RuleOperator.IS_NOT_EMPTY)

    @property
    def takes_list(self) -> bool:
        return self in (RuleOperator.IN, RuleOperator.NOT_IN)


_OPERATOR_SYMBOLS: dict[RuleOperator, str] = {
    RuleOperator.EQUALS: "==",
    RuleOperator.NOT_EQUALS: "!=",
    RuleOperator.IN: "in",
    RuleOperator.NOT_IN: "not in",
    RuleOperator.GREATER_THAN: ">",
    RuleOperator.GREATER_THAN_OR_EQUAL: ">=",
    RuleOperator.LESS_THAN: "<",
    RuleOperator.LESS_THAN_OR_EQUAL: "<=",
    RuleOperator.IS_EMPTY: "is empty",
    RuleOperator.IS_NOT_EMPTY: "is not empty",
}


class Comparison(BaseModel):
    """
    A single comparison of a field's current value.

    Examples:
        - productType equals "digital"
        - region in ["EU", "UK"]
        - notes isEmpty
    """

    field: str = Field(description="Dot path of the field being tested")
    operator: RuleOperator
    value: Any = None

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        symbol = _OPERATOR_SYMBOLS[self.operator]
        if not self.operator.takes_value:
            return f"{self.field} {symbol}"
        return f"{self.field} {symbol} {json.dumps(self.value, default=str)}"


class AndRule(BaseModel):
    """All children must hold. An empty AND holds."""

    children: list[Rule] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return "(" + " && ".join(str(c) for c in self.children) + ")"


class OrRule(BaseModel):
    """At least one child must hold. An empty OR does not hold."""

    children: list[Rule] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return "(" + " || ".join(str(c) for c in self.children) + ")"


Rule = Comparison | AndRule | OrRule

AndRule.model_rebuild()
OrRule.model_rebuild()


def referenced_fields(rule: Rule | None) -> list[str]:
    """Return the unique field paths a rule reads, in first-seen order."""
    if rule is None:
        return []
    if isinstance(rule, Comparison):
        return [rule.field]
    seen: dict[str, None] = {}
    for child in rule.children:
        for path in referenced_fields(child):
            seen.setdefault(path, None)
    return list(seen)
