"""
Formula evaluator for formlogic.

Two layers:

- ``evaluate`` walks a formula AST against a dict of bound variables and
  raises ExpressionEvalError on anything it cannot compute.
- ``evaluate_formula`` implements the calculated-field policy on top:
  binds dependencies from a snapshot, checks readiness, and turns every
  failure into ``None`` (indeterminate).

Pure evaluation, no I/O. Does NOT use Python's eval(); only the closed set
of AST node types and FORMULA_FUNCTIONS are handled.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from decimal import ROUND_HALF_EVEN, ROUND_HALF_UP, Decimal, localcontext
from typing import Any

from formlogic.core.coercion import parse_number, strict_equals, to_number
from formlogic.core.formula_lang.parser import ExpressionParseError, parse_formula
from formlogic.core.ir.fields import CalculationSpec
from formlogic.core.ir.formulas import (
    FORMULA_FUNCTIONS,
    BinaryExpr,
    BinaryOp,
    ConditionalExpr,
    Expr,
    FuncCall,
    Literal,
    UnaryExpr,
    UnaryOp,
    Variable,
)
from formlogic.core.paths import get_path, is_empty, last_segment

logger = logging.getLogger(__name__)

Value = int | float | str | bool


class ExpressionEvalError(Exception):
    """Error during expression evaluation."""


# =============================================================================
# Tree-walking interpreter
# =============================================================================


def evaluate(expr: Expr, variables: Mapping[str, Any], *, round_half: str = "up") -> Any:
    """Evaluate a formula AST against bound variables.

    Args:
        expr: Parsed formula AST.
        variables: Variable name -> value.
        round_half: "up" (away from zero at .5, like spreadsheet rounding) or "even".

    Returns:
        The computed value.

    Raises:
        ExpressionEvalError: If evaluation fails.
    """
    try:
        return _Interpreter(variables, round_half).visit(expr)
    except RecursionError as e:
        raise ExpressionEvalError("Formula is nested too deeply") from e


class _Interpreter:
    def __init__(self, variables: Mapping[str, Any], round_half: str) -> None:
        self.variables = variables
        self.rounding = ROUND_HALF_EVEN if round_half == "even" else ROUND_HALF_UP

    def visit(self, expr: Expr) -> Any:
        """Dispatch evaluation to the appropriate handler."""
        if isinstance(expr, Literal):
            return expr.value
        if isinstance(expr, Variable):
            if expr.name not in self.variables:
                raise ExpressionEvalError(f"Unknown variable: {expr.name}")
            return self.variables[expr.name]
        if isinstance(expr, BinaryExpr):
            return self._binary(expr)
        if isinstance(expr, UnaryExpr):
            return self._unary(expr)
        if isinstance(expr, ConditionalExpr):
            if _truthy(self.visit(expr.condition)):
                return self.visit(expr.then_expr)
            return self.visit(expr.else_expr)
        if isinstance(expr, FuncCall):
            return self._call(expr)
        raise ExpressionEvalError(f"Unknown expression type: {type(expr).__name__}")

    def _binary(self, expr: BinaryExpr) -> Any:
        # Short-circuit for logical operators; the deciding operand is returned
        if expr.op == BinaryOp.AND:
            left = self.visit(expr.left)
            return self.visit(expr.right) if _truthy(left) else left
        if expr.op == BinaryOp.OR:
            left = self.visit(expr.left)
            return left if _truthy(left) else self.visit(expr.right)

        left = self.visit(expr.left)
        right = self.visit(expr.right)

        if expr.op == BinaryOp.EQ:
            return strict_equals(left, right)
        if expr.op == BinaryOp.NE:
            return not strict_equals(left, right)
        if expr.op in (BinaryOp.LT, BinaryOp.GT, BinaryOp.LE, BinaryOp.GE):
            return _compare(expr.op, left, right)

        if expr.op == BinaryOp.ADD and (isinstance(left, str) or isinstance(right, str)):
            return _to_text(left) + _to_text(right)

        a = _numeric(left, expr.op)
        b = _numeric(right, expr.op)
        if expr.op == BinaryOp.ADD:
            return a + b
        if expr.op == BinaryOp.SUB:
            return a - b
        if expr.op == BinaryOp.MUL:
            return a * b
        if expr.op == BinaryOp.DIV:
            if b == 0:
                raise ExpressionEvalError("Division by zero")
            return a / b
        if expr.op == BinaryOp.MOD:
            if b == 0:
                raise ExpressionEvalError("Modulo by zero")
            # Remainder takes the sign of the dividend
            remainder = math.fmod(a, b)
            if isinstance(a, int) and isinstance(b, int):
                return int(remainder)
            return remainder

        raise ExpressionEvalError(f"Unknown binary op: {expr.op}")

    def _unary(self, expr: UnaryExpr) -> Any:
        val = self.visit(expr.operand)
        if expr.op == UnaryOp.NOT:
            return not _truthy(val)
        if expr.op == UnaryOp.NEG:
            return -_numeric(val, expr.op)
        raise ExpressionEvalError(f"Unknown unary op: {expr.op}")

    def _call(self, expr: FuncCall) -> Any:
        """Evaluate a built-in function call (closed set, no user-defined functions)."""
        name = expr.name
        if name not in FORMULA_FUNCTIONS:
            raise ExpressionEvalError(f"Unknown function: {name}()")
        args = [self.visit(a) for a in expr.args]

        if name in ("min", "max"):
            if not args:
                raise ExpressionEvalError(f"{name}() requires at least 1 argument")
            numbers = [_numeric(a, name) for a in args]
            return min(numbers) if name == "min" else max(numbers)

        if name == "round":
            if len(args) not in (1, 2):
                raise ExpressionEvalError("round() takes 1-2 arguments")
            value = _numeric(args[0], name)
            digits = int(_numeric(args[1], name)) if len(args) == 2 else 0
            return self._round(value, digits)

        if name in ("floor", "ceil", "abs", "sqrt"):
            if len(args) != 1:
                raise ExpressionEvalError(f"{name}() takes exactly 1 argument")
            value = _numeric(args[0], name)
            if name == "floor":
                return math.floor(value)
            if name == "ceil":
                return math.ceil(value)
            if name == "abs":
                return abs(value)
            if value < 0:
                raise ExpressionEvalError("sqrt() of a negative number")
            return math.sqrt(value)

        raise ExpressionEvalError(f"Unhandled function: {name}()")

    def _round(self, value: int | float, digits: int) -> int | float:
        if isinstance(value, int):
            if digits >= 0:
                return value
        elif not math.isfinite(value):
            raise ExpressionEvalError("round() of a non-finite number")
        elif digits >= 0 and value.is_integer():
            return int(value) if digits == 0 else value
        exact = Decimal(str(value))
        quantum = Decimal(1).scaleb(-digits)
        with localcontext() as ctx:
            # every integer digit plus the requested fraction digits must fit
            ctx.prec = max(ctx.prec, exact.adjusted() + digits + 2)
            rounded = exact.quantize(quantum, rounding=self.rounding)
        return int(rounded) if digits <= 0 else float(rounded)


def _truthy(value: Any) -> bool:
    if isinstance(value, float) and math.isnan(value):
        return False
    return bool(value)


def _to_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _numeric(value: Any, op: object) -> int | float:
    """Operand for arithmetic: numbers, booleans as 0/1, numeric strings."""
    if isinstance(value, bool):
        return int(value)
    number = to_number(value)
    if number is None:
        raise ExpressionEvalError(f"Operand {value!r} of {op} is not a number")
    return number


def _compare(op: BinaryOp, left: Any, right: Any) -> bool:
    if isinstance(left, str) and isinstance(right, str):
        a: Any = left
        b: Any = right
    else:
        a = _numeric_or_none(left)
        b = _numeric_or_none(right)
        if a is None or b is None:
            return False
    if op == BinaryOp.LT:
        return a < b
    if op == BinaryOp.GT:
        return a > b
    if op == BinaryOp.LE:
        return a <= b
    return a >= b


def _numeric_or_none(value: Any) -> int | float | None:
    if isinstance(value, bool):
        return int(value)
    return to_number(value)


# =============================================================================
# Calculated-field policy
# =============================================================================


def bind_dependencies(depends_on: list[str]) -> dict[str, str]:
    """Map each dependency path to its last path segment.

    When two paths share a last segment both keep that name; the later
    dependency's value wins when variables are bound.
    """
    return {path: last_segment(path) for path in depends_on}


def evaluate_formula(
    formula: str | Expr,
    snapshot: Mapping[str, Any],
    depends_on: list[str],
    *,
    bindings: Mapping[str, str] | None = None,
    round_half: str = "up",
) -> Value | None:
    """Evaluate a calculated-field formula.

    Args:
        formula: Formula text or an already-parsed AST.
        snapshot: Current form values (flat or nested).
        depends_on: Dependency paths, in declaration order.
        bindings: Optional path -> variable name map; defaults to last path segments.
        round_half: Rounding mode for round().

    Returns:
        The computed value, or None when the result is indeterminate:
        a dependency is missing, None or "", the result is not a finite
        number, or the formula cannot be parsed or evaluated.
    """
    names = dict(bindings) if bindings is not None else bind_dependencies(depends_on)

    variables: dict[str, Any] = {}
    for path in depends_on:
        value = get_path(snapshot, path)
        if is_empty(value):
            return None
        if isinstance(value, str):
            number = parse_number(value)
            if number is not None:
                value = number
        variables[names.get(path, last_segment(path))] = value

    try:
        expr = parse_formula(formula) if isinstance(formula, str) else formula
        result = evaluate(expr, variables, round_half=round_half)
    except (ExpressionParseError, ExpressionEvalError) as e:
        logger.debug(f"Formula {formula!s} is indeterminate: {e}")
        return None
    except (ArithmeticError, TypeError, ValueError) as e:
        logger.debug(f"Formula {formula!s} failed: {e}")
        return None

    # ints are exact at any size; only floats can overflow to inf or nan
    if isinstance(result, float) and not math.isfinite(result):
        return None
    return result


def evaluate_calculation(
    calc: CalculationSpec,
    snapshot: Mapping[str, Any],
    *,
    round_half: str = "up",
) -> Value | None:
    """Evaluate a parsed calculation; None when indeterminate."""
    if calc.expr is None:
        logger.debug(f"Calculation {calc.target} has no usable formula: {calc.parse_error}")
        return None
    return evaluate_formula(
        calc.expr,
        snapshot,
        calc.depends_on,
        bindings=calc.bindings,
        round_half=round_half,
    )
