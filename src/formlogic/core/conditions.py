"""
Condition evaluator.

Evaluates rule trees against a value snapshot. Pure and total: missing
fields read as MISSING and flow through the operator semantics, so
evaluation never raises on incomplete form data.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from formlogic.core.coercion import is_number, strict_contains, strict_equals, to_number
from formlogic.core.ir.rules import AndRule, Comparison, OrRule, Rule, RuleOperator
from formlogic.core.paths import get_path, is_empty


def evaluate_rule(rule: Rule, values: Mapping[str, Any]) -> bool:
    """Evaluate a rule tree.

    AND/OR short-circuit left to right. An empty AND holds; an empty OR
    does not.
    """
    if isinstance(rule, Comparison):
        return evaluate_comparison(rule, values)
    if isinstance(rule, AndRule):
        return all(evaluate_rule(child, values) for child in rule.children)
    if isinstance(rule, OrRule):
        return any(evaluate_rule(child, values) for child in rule.children)
    raise TypeError(f"Unknown rule type: {type(rule).__name__}")


def evaluate_comparison(rule: Comparison, values: Mapping[str, Any]) -> bool:
    actual = get_path(values, rule.field)
    expected = rule.value
    op = rule.operator

    if op == RuleOperator.EQUALS:
        return strict_equals(actual, expected)
    if op == RuleOperator.NOT_EQUALS:
        return not strict_equals(actual, expected)
    if op == RuleOperator.IN:
        return isinstance(expected, list) and strict_contains(expected, actual)
    if op == RuleOperator.NOT_IN:
        return not (isinstance(expected, list) and strict_contains(expected, actual))
    if op == RuleOperator.IS_EMPTY:
        return is_empty(actual)
    if op == RuleOperator.IS_NOT_EMPTY:
        return not is_empty(actual)
    return _ordering(op, actual, expected)


def _ordering(op: RuleOperator, actual: Any, expected: Any) -> bool:
    """Numeric comparison when both sides coerce to numbers, otherwise as given."""
    left = to_number(actual)
    right = to_number(expected)
    if left is None or right is None:
        left, right = actual, expected
        if is_number(left) != is_number(right) or isinstance(left, bool) != isinstance(right, bool):
            return False
    try:
        if op == RuleOperator.GREATER_THAN:
            return bool(left > right)
        if op == RuleOperator.GREATER_THAN_OR_EQUAL:
            return bool(left >= right)
        if op == RuleOperator.LESS_THAN:
            return bool(left < right)
        if op == RuleOperator.LESS_THAN_OR_EQUAL:
            return bool(left <= right)
    except TypeError:
        return False
    raise ValueError(f"Unknown rule operator: {op}")


# =============================================================================
# Role helpers
# =============================================================================


def is_hidden(rule: Rule | None, values: Mapping[str, Any]) -> bool:
    """No hide rule means visible."""
    return rule is not None and evaluate_rule(rule, values)


def is_required(rule: Rule | None, values: Mapping[str, Any]) -> bool:
    """No required rule means not conditionally required."""
    return rule is not None and evaluate_rule(rule, values)


def is_read_only(rule: Rule | None, values: Mapping[str, Any]) -> bool:
    """No read-only rule means editable."""
    return rule is not None and evaluate_rule(rule, values)
