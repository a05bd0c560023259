"""
Textual rule expressions.

Lets schema authors write ``ui.hiddenWhen`` as a string instead of a rule
object:

    productType == 'physical' && quantity > 5
    region in ['EU', 'UK'] || (vatNumber is not empty && total >= 100)

Grammar:
    rule        → or_rule
    or_rule     → and_rule ("||" and_rule)*
    and_rule    → primary ("&&" primary)*
    primary     → "(" rule ")" | comparison
    comparison  → path operator value?
    path        → IDENT ("." IDENT | "[" INT "]")*
    operator    → "==" | "!=" | ">" | ">=" | "<" | "<=" | "in" | "not" "in"
                | "is" "empty" | "is" "not" "empty" | "not" "empty"
    value       → STRING | "-"? (INT | FLOAT) | "true" | "false" | "null" | list
    list        → "[" (value ("," value)*)? "]"
"""

from __future__ import annotations

from typing import Any

from formlogic.core.formula_lang.parser import ExpressionParseError, TokenStream
from formlogic.core.formula_lang.tokenizer import (
    RULE_KEYWORDS,
    ExpressionTokenError,
    TokenKind,
    tokenize,
)
from formlogic.core.ir.rules import AndRule, Comparison, OrRule, Rule, RuleOperator

_SYMBOL_OPERATORS: dict[TokenKind, RuleOperator] = {
    TokenKind.EQ: RuleOperator.EQUALS,
    TokenKind.NE: RuleOperator.NOT_EQUALS,
    TokenKind.GT: RuleOperator.GREATER_THAN,
    TokenKind.GE: RuleOperator.GREATER_THAN_OR_EQUAL,
    TokenKind.LT: RuleOperator.LESS_THAN,
    TokenKind.LE: RuleOperator.LESS_THAN_OR_EQUAL,
}


class _RuleParser(TokenStream):
    """Recursive descent parser for rule expressions."""

    def parse_rule(self) -> Rule:
        children = [self.parse_and_rule()]
        while self.match(TokenKind.OR):
            children.append(self.parse_and_rule())
        return children[0] if len(children) == 1 else OrRule(children=children)

    def parse_and_rule(self) -> Rule:
        children = [self.parse_primary()]
        while self.match(TokenKind.AND):
            children.append(self.parse_primary())
        return children[0] if len(children) == 1 else AndRule(children=children)

    def parse_primary(self) -> Rule:
        if self.match(TokenKind.LPAREN):
            rule = self.parse_rule()
            self.expect(TokenKind.RPAREN)
            return rule
        return self.parse_comparison()

    def parse_comparison(self) -> Comparison:
        field = self._parse_path()
        operator = self._parse_operator()
        value = self._parse_value() if operator.takes_value else None
        if operator.takes_list and not isinstance(value, list):
            raise ExpressionParseError(
                f"'{operator.value}' expects a list, got {value!r}", self.current.pos
            )
        return Comparison(field=field, operator=operator, value=value)

    def _parse_path(self) -> str:
        path = self.expect(TokenKind.IDENT).value
        while True:
            if self.match(TokenKind.DOT):
                path += "." + self.expect(TokenKind.IDENT).value
            elif self.match(TokenKind.LBRACKET):
                index = self.expect(TokenKind.INT).value
                self.expect(TokenKind.RBRACKET)
                path += f"[{index}]"
            else:
                return path

    def _parse_operator(self) -> RuleOperator:
        tok = self.current
        if tok.kind in _SYMBOL_OPERATORS:
            self.advance()
            return _SYMBOL_OPERATORS[tok.kind]
        if self.match(TokenKind.IN):
            return RuleOperator.IN
        if self.match(TokenKind.NOT_KW):
            if self.match(TokenKind.IN):
                return RuleOperator.NOT_IN
            if self.match(TokenKind.EMPTY):
                return RuleOperator.IS_NOT_EMPTY
            raise ExpressionParseError("Expected 'in' or 'empty' after 'not'", self.current.pos)
        if self.match(TokenKind.IS):
            if self.match(TokenKind.NOT_KW):
                self.expect(TokenKind.EMPTY)
                return RuleOperator.IS_NOT_EMPTY
            self.expect(TokenKind.EMPTY)
            return RuleOperator.IS_EMPTY
        raise ExpressionParseError(
            f"Expected comparison operator, got {tok.kind} ({tok.value!r})", tok.pos
        )

    def _parse_value(self) -> Any:
        tok = self.current
        if tok.kind == TokenKind.LBRACKET:
            self.advance()
            items: list[Any] = []
            if self.current.kind != TokenKind.RBRACKET:
                items.append(self._parse_value())
                while self.match(TokenKind.COMMA):
                    items.append(self._parse_value())
            self.expect(TokenKind.RBRACKET)
            return items

        negative = bool(self.match(TokenKind.MINUS))
        tok = self.current
        if tok.kind in (TokenKind.INT, TokenKind.FLOAT):
            self.advance()
            number: int | float = int(tok.value) if tok.kind == TokenKind.INT else float(tok.value)
            return -number if negative else number
        if negative:
            raise ExpressionParseError("Expected a number after '-'", tok.pos)

        if tok.kind == TokenKind.STRING:
            self.advance()
            return tok.value
        if tok.kind == TokenKind.TRUE:
            self.advance()
            return True
        if tok.kind == TokenKind.FALSE:
            self.advance()
            return False
        if tok.kind == TokenKind.NULL:
            self.advance()
            return None
        raise ExpressionParseError(f"Expected value, got {tok.kind} ({tok.value!r})", tok.pos)


def parse_rule(source: str) -> Rule:
    """Parse a rule expression into a rule tree.

    Raises:
        ExpressionParseError: If the expression is invalid, including tokenization failures.
    """
    if not source or not source.strip():
        raise ExpressionParseError("Rule expression is empty")

    try:
        tokens = tokenize(source, RULE_KEYWORDS)
    except ExpressionTokenError as e:
        raise ExpressionParseError(str(e), e.pos) from e

    parser = _RuleParser(tokens)
    try:
        rule = parser.parse_rule()
    except RecursionError as e:
        raise ExpressionParseError("Rule expression is nested too deeply") from e
    parser.expect_end()
    return rule


def validate_rule(source: str) -> bool:
    """Check whether a rule expression parses."""
    try:
        parse_rule(source)
    except ExpressionParseError:
        return False
    return True
