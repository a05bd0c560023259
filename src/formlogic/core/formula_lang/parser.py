"""
Recursive descent parser for formlogic formulas.

Grammar (precedence low to high):
    expr        → ternary
    ternary     → or_expr ("?" ternary ":" ternary)?
    or_expr     → and_expr ("||" and_expr)*
    and_expr    → equality ("&&" equality)*
    equality    → relational (("==" | "!=") relational)*
    relational  → additive (("<" | ">" | "<=" | ">=") additive)*
    additive    → multiply (("+" | "-") multiply)*
    multiply    → unary (("*" | "/" | "%") unary)*
    unary       → ("-" | "!") unary | primary
    primary     → literal | func_call | variable | "(" expr ")"
    literal     → INT | FLOAT | STRING | "true" | "false"
    func_call   → ("Math" ".")? IDENT "(" (expr ("," expr)*)? ")"
    variable    → IDENT
"""

from __future__ import annotations

from collections.abc import Iterator

from formlogic.core.formula_lang.tokenizer import (
    FORMULA_KEYWORDS,
    ExpressionTokenError,
    Token,
    TokenKind,
    tokenize,
)
from formlogic.core.ir.formulas import (
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


class ExpressionParseError(Exception):
    """Error during expression parsing."""

    def __init__(self, message: str, pos: int = 0) -> None:
        super().__init__(message)
        self.pos = pos


class TokenStream:
    """Cursor over a token list, shared by the formula and rule parsers."""

    def __init__(self, tokens: list[Token]) -> None:
        self.tokens = tokens
        self.pos = 0

    @property
    def current(self) -> Token:
        return self.tokens[self.pos]

    def peek(self, offset: int = 0) -> Token:
        idx = self.pos + offset
        if idx < len(self.tokens):
            return self.tokens[idx]
        return self.tokens[-1]  # EOF

    def advance(self) -> Token:
        tok = self.tokens[self.pos]
        if self.pos < len(self.tokens) - 1:
            self.pos += 1
        return tok

    def expect(self, kind: TokenKind) -> Token:
        tok = self.current
        if tok.kind != kind:
            raise ExpressionParseError(
                f"Expected {kind}, got {tok.kind} ({tok.value!r})",
                tok.pos,
            )
        return self.advance()

    def match(self, *kinds: TokenKind) -> Token | None:
        if self.current.kind in kinds:
            return self.advance()
        return None

    def expect_end(self) -> None:
        if self.current.kind != TokenKind.EOF:
            raise ExpressionParseError(
                f"Unexpected token after expression: {self.current.value!r}",
                self.current.pos,
            )


_EQUALITY_OPS: dict[TokenKind, BinaryOp] = {
    TokenKind.EQ: BinaryOp.EQ,
    TokenKind.NE: BinaryOp.NE,
}

_RELATIONAL_OPS: dict[TokenKind, BinaryOp] = {
    TokenKind.LT: BinaryOp.LT,
    TokenKind.GT: BinaryOp.GT,
    TokenKind.LE: BinaryOp.LE,
    TokenKind.GE: BinaryOp.GE,
}

_ADDITIVE_OPS: dict[TokenKind, BinaryOp] = {
    TokenKind.PLUS: BinaryOp.ADD,
    TokenKind.MINUS: BinaryOp.SUB,
}

_MULTIPLY_OPS: dict[TokenKind, BinaryOp] = {
    TokenKind.STAR: BinaryOp.MUL,
    TokenKind.SLASH: BinaryOp.DIV,
    TokenKind.PERCENT: BinaryOp.MOD,
}


class _Parser(TokenStream):
    """Recursive descent parser for formulas."""

    def parse_expr(self) -> Expr:
        return self.parse_ternary()

    def parse_ternary(self) -> Expr:
        """or_expr ('?' ternary ':' ternary)?"""
        condition = self.parse_or_expr()
        if not self.match(TokenKind.QUESTION):
            return condition
        then_expr = self.parse_ternary()
        self.expect(TokenKind.COLON)
        else_expr = self.parse_ternary()
        return ConditionalExpr(condition=condition, then_expr=then_expr, else_expr=else_expr)

    def parse_or_expr(self) -> Expr:
        """and_expr ('||' and_expr)*"""
        left = self.parse_and_expr()
        while self.match(TokenKind.OR):
            right = self.parse_and_expr()
            left = BinaryExpr(op=BinaryOp.OR, left=left, right=right)
        return left

    def parse_and_expr(self) -> Expr:
        """equality ('&&' equality)*"""
        left = self._parse_binary_level(_EQUALITY_OPS, self._parse_relational)
        while self.match(TokenKind.AND):
            right = self._parse_binary_level(_EQUALITY_OPS, self._parse_relational)
            left = BinaryExpr(op=BinaryOp.AND, left=left, right=right)
        return left

    def _parse_relational(self) -> Expr:
        return self._parse_binary_level(_RELATIONAL_OPS, self._parse_additive)

    def _parse_additive(self) -> Expr:
        return self._parse_binary_level(_ADDITIVE_OPS, self._parse_multiply)

    def _parse_multiply(self) -> Expr:
        return self._parse_binary_level(_MULTIPLY_OPS, self.parse_unary)

    def _parse_binary_level(self, ops: dict[TokenKind, BinaryOp], operand) -> Expr:
        """Left-associative chain of one precedence level."""
        left = operand()
        while self.current.kind in ops:
            op = ops[self.advance().kind]
            right = operand()
            left = BinaryExpr(op=op, left=left, right=right)
        return left

    def parse_unary(self) -> Expr:
        """('-' | '!') unary | primary"""
        if self.match(TokenKind.MINUS):
            return UnaryExpr(op=UnaryOp.NEG, operand=self.parse_unary())
        if self.match(TokenKind.BANG):
            return UnaryExpr(op=UnaryOp.NOT, operand=self.parse_unary())
        return self.parse_primary()

    def parse_primary(self) -> Expr:
        """literal | func_call | variable | '(' expr ')'"""
        tok = self.current

        if tok.kind == TokenKind.LPAREN:
            self.advance()
            expr = self.parse_expr()
            self.expect(TokenKind.RPAREN)
            return expr

        if tok.kind == TokenKind.INT:
            self.advance()
            return Literal(value=int(tok.value))
        if tok.kind == TokenKind.FLOAT:
            self.advance()
            return Literal(value=float(tok.value))
        if tok.kind == TokenKind.STRING:
            self.advance()
            return Literal(value=tok.value)
        if tok.kind == TokenKind.TRUE:
            self.advance()
            return Literal(value=True)
        if tok.kind == TokenKind.FALSE:
            self.advance()
            return Literal(value=False)

        if tok.kind == TokenKind.IDENT:
            # Math.round(x) is accepted as an alias for round(x)
            if tok.value == "Math" and self.peek(1).kind == TokenKind.DOT:
                self.advance()
                self.advance()
                return self._parse_func_call()
            if self.peek(1).kind == TokenKind.LPAREN:
                return self._parse_func_call()
            self.advance()
            return Variable(name=tok.value)

        raise ExpressionParseError(
            f"Unexpected token: {tok.kind} ({tok.value!r})",
            tok.pos,
        )

    def _parse_func_call(self) -> FuncCall:
        """IDENT '(' (expr (',' expr)*)? ')'"""
        name_tok = self.expect(TokenKind.IDENT)
        self.expect(TokenKind.LPAREN)

        args: list[Expr] = []
        if self.current.kind != TokenKind.RPAREN:
            args.append(self.parse_expr())
            while self.match(TokenKind.COMMA):
                args.append(self.parse_expr())

        self.expect(TokenKind.RPAREN)
        return FuncCall(name=name_tok.value, args=args)


def parse_formula(source: str) -> Expr:
    """Parse a formula string into an AST.

    Args:
        source: Formula text (e.g., "quantity * unitPrice")

    Returns:
        Parsed formula AST.

    Raises:
        ExpressionParseError: If the formula is invalid, including tokenization failures.
    """
    if not source or not source.strip():
        raise ExpressionParseError("Formula is empty")

    try:
        tokens = tokenize(source, FORMULA_KEYWORDS)
    except ExpressionTokenError as e:
        raise ExpressionParseError(str(e), e.pos) from e

    parser = _Parser(tokens)
    try:
        expr = parser.parse_expr()
    except RecursionError as e:
        raise ExpressionParseError("Formula is nested too deeply") from e
    parser.expect_end()
    return expr


def validate_formula(source: str) -> bool:
    """Check whether a formula parses."""
    try:
        parse_formula(source)
    except ExpressionParseError:
        return False
    return True


def _walk(expr: Expr) -> Iterator[Expr]:
    """Yield every node of a formula AST, depth first, left to right."""
    yield expr
    if isinstance(expr, BinaryExpr):
        yield from _walk(expr.left)
        yield from _walk(expr.right)
    elif isinstance(expr, UnaryExpr):
        yield from _walk(expr.operand)
    elif isinstance(expr, ConditionalExpr):
        yield from _walk(expr.condition)
        yield from _walk(expr.then_expr)
        yield from _walk(expr.else_expr)
    elif isinstance(expr, FuncCall):
        for arg in expr.args:
            yield from _walk(arg)


def extract_variables(expr: Expr) -> list[str]:
    """Free variable names of a formula AST, in first-seen order."""
    return list(dict.fromkeys(n.name for n in _walk(expr) if isinstance(n, Variable)))


def extract_functions(expr: Expr) -> list[str]:
    """Called function names of a formula AST, in first-seen order."""
    return list(dict.fromkeys(n.name for n in _walk(expr) if isinstance(n, FuncCall)))
