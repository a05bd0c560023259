"""
Formula expression types for formlogic IR.

Typed AST for calculated-field formulas. The grammar is deliberately
small and side-effect free:

- Arithmetic: +, -, *, /, %
- Comparison: ==, !=, <, >, <=, >=
- Logic: &&, ||, !
- Ternary: cond ? a : b
- Variables bound from a calculation's dependencies: quantity, unitPrice
- Calls to a fixed function set: min, max, round, floor, ceil, abs, sqrt
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Operators
# ---------------------------------------------------------------------------


class BinaryOp(StrEnum):
    """Binary operators for formulas."""

    # Arithmetic
    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"
    MOD = "%"
    # Comparison
    EQ = "=="
    NE = "!="
    LT = "<"
    GT = ">"
    LE = "<="
    GE = ">="
    # Logical
    AND = "&&"
    OR = "||"


class UnaryOp(StrEnum):
    """Unary operators for formulas."""

    NEG = "-"
    NOT = "!"


FORMULA_FUNCTIONS: frozenset[str] = frozenset(
    {"min", "max", "round", "floor", "ceil", "abs", "sqrt"}
)

# ---------------------------------------------------------------------------
# AST node types
# ---------------------------------------------------------------------------


class Literal(BaseModel):
    """A literal value: int, float, str or bool."""

    value: int | float | str | bool = Field(description="The literal value")

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        if isinstance(self.value, str):
            return f'"{self.value}"'
        if isinstance(self.value, bool):
            return "true" if self.value else "false"
        return str(self.value)


class Variable(BaseModel):
    """A named input, bound from a calculation dependency at evaluation time."""

    name: str = Field(description="Variable name")

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return self.name


class BinaryExpr(BaseModel):
    """Binary operation: left op right."""

    op: BinaryOp
    left: Expr
    right: Expr

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return f"({self.left} {self.op.value} {self.right})"


class UnaryExpr(BaseModel):
    """Unary operation: op operand."""

    op: UnaryOp
    operand: Expr

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return f"{self.op.value}{self.operand}"


class ConditionalExpr(BaseModel):
    """Ternary expression: condition ? then_expr : else_expr."""

    condition: Expr
    then_expr: Expr
    else_expr: Expr

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return f"({self.condition} ? {self.then_expr} : {self.else_expr})"


class FuncCall(BaseModel):
    """
    Function call: name(arg1, arg2, ...).

    Only names in FORMULA_FUNCTIONS can be evaluated; anything else is
    accepted by the parser and fails at evaluation time.
    """

    name: str = Field(description="Function name")
    args: list[Expr] = Field(default_factory=list, description="Arguments")

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        args_str = ", ".join(str(a) for a in self.args)
        return f"{self.name}({args_str})"


# ---------------------------------------------------------------------------
# Union type
# ---------------------------------------------------------------------------

Expr = Literal | Variable | BinaryExpr | UnaryExpr | ConditionalExpr | FuncCall

# Rebuild models for recursive forward references
BinaryExpr.model_rebuild()
UnaryExpr.model_rebuild()
ConditionalExpr.model_rebuild()
FuncCall.model_rebuild()
