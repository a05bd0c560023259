"""
formlogic Intermediate Representation (IR) types.

Types are organized into submodules and re-exported here.
"""

# Fields
from .fields import (
    CalculationSpec,
    FieldNode,
    WidgetType,
)

# Formulas
from .formulas import (
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

# Rules
from .rules import (
    AndRule,
    Comparison,
    OrRule,
    Rule,
    RuleOperator,
    referenced_fields,
)

# Parsed schema
from .schema import ParsedSchema

__all__ = [
    # Fields
    "CalculationSpec",
    "FieldNode",
    "WidgetType",
    # Formulas
    "FORMULA_FUNCTIONS",
    "BinaryExpr",
    "BinaryOp",
    "ConditionalExpr",
    "Expr",
    "FuncCall",
    "Literal",
    "UnaryExpr",
    "UnaryOp",
    "Variable",
    # Rules
    "AndRule",
    "Comparison",
    "OrRule",
    "Rule",
    "RuleOperator",
    "referenced_fields",
    # Schema
    "ParsedSchema",
]
