"""
formlogic formula language.

Tokenizer, parser and evaluator for calculated-field formulas.

Usage:
    from formlogic.core.formula_lang import parse_formula, evaluate

    expr = parse_formula("quantity * unitPrice")
    result = evaluate(expr, {"quantity": 3, "unitPrice": 10})
    # result == 30
"""

from formlogic.core.formula_lang.evaluator import (
    ExpressionEvalError,
    evaluate,
    evaluate_calculation,
    evaluate_formula,
)
from formlogic.core.formula_lang.parser import (
    ExpressionParseError,
    extract_functions,
    extract_variables,
    parse_formula,
    validate_formula,
)

__all__ = [
    "ExpressionEvalError",
    "ExpressionParseError",
    "evaluate",
    "evaluate_calculation",
    "evaluate_formula",
    "extract_functions",
    "extract_variables",
    "parse_formula",
    "validate_formula",
]
