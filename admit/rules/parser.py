"""
Recursive-descent parser for invariant rules.

Grammar:

    Rule        := Comparison ( ImplyOp Comparison )?
    Comparison  := Operand ( CompOp Operand )?
    Operand     := StringLit | Ref
    Ref         := Ident ( '.' Ident )*

One token of lookahead, no backtracking. Reference validation against the
schema's declared keys is a separate pass over the finished AST, so rules can
be parsed without a schema.
"""

from __future__ import annotations

from typing import Iterable

from .errors import RuleSyntaxError, UndefinedKeyError
from .expr import CompOp, Comparison, ConfigRef, ExecutionEnv, Implication, RuleExpr, StringLiteral
from .lexer import Lexer, Token, TokenType

EXECUTION_ENV_PATH = "execution.env"

_COMPARISON_OPS = {
    TokenType.EQUAL: CompOp.EQUAL,
    TokenType.NOT_EQUAL: CompOp.NOT_EQUAL,
}


class Parser:
    def __init__(self, text: str):
        self.lexer = Lexer(text)
        self.current: Token = self.lexer.next_token()

    def advance(self) -> None:
        self.current = self.lexer.next_token()

    def parse(self) -> RuleExpr:
        expr = self.parse_rule()
        if self.current.type is not TokenType.EOF:
            raise RuleSyntaxError(f"unexpected token {self.current.describe()} after expression")
        return expr

    def parse_rule(self) -> RuleExpr:
        left = self.parse_comparison()
        if self.current.type is TokenType.IMPLY:
            self.advance()
            right = self.parse_comparison()
            return Implication(antecedent=left, consequent=right)
        return left

    def parse_comparison(self) -> RuleExpr:
        left = self.parse_operand()
        op = _COMPARISON_OPS.get(self.current.type)
        if op is None:
            return left
        self.advance()
        right = self.parse_operand()
        return Comparison(left=left, right=right, operator=op)

    def parse_operand(self) -> RuleExpr:
        tok = self.current
        if tok.type is TokenType.STRING:
            self.advance()
            return StringLiteral(tok.value)
        if tok.type is TokenType.IDENT:
            return self.parse_ref()
        raise RuleSyntaxError(f"expected operand, got {tok.describe()}")

    def parse_ref(self) -> RuleExpr:
        parts = [self.current.value]
        self.advance()
        while self.current.type is TokenType.DOT:
            self.advance()
            if self.current.type is not TokenType.IDENT:
                raise RuleSyntaxError(f"expected identifier after '.', got {self.current.describe()}")
            parts.append(self.current.value)
            self.advance()

        path = ".".join(parts)
        if path == EXECUTION_ENV_PATH:
            return ExecutionEnv()
        return ConfigRef(path)


def parse_rule(text: str, known_keys: Iterable[str] | None = None) -> RuleExpr:
    """
    Parse rule text into an AST.

    Args:
        text: Rule source, e.g. 'execution.env == "prod" => db.env == "prod"'
        known_keys: Declared config paths. When given, every ConfigRef in the
            rule must name one of them.

    Raises:
        RuleSyntaxError: the text is not a well-formed rule
        UndefinedKeyError: known_keys was given and the rule references others
    """
    text = text.strip()
    if not text:
        raise RuleSyntaxError("empty rule expression")

    expr = Parser(text).parse()
    if known_keys is not None:
        validate_rule_refs(expr, known_keys)
    return expr


def collect_config_refs(expr: RuleExpr) -> list[str]:
    """ConfigRef paths in traversal order (antecedent before consequent, left before right)."""
    if isinstance(expr, Implication):
        return collect_config_refs(expr.antecedent) + collect_config_refs(expr.consequent)
    if isinstance(expr, Comparison):
        return collect_config_refs(expr.left) + collect_config_refs(expr.right)
    if isinstance(expr, ConfigRef):
        return [expr.path]
    return []


def validate_rule_refs(expr: RuleExpr, known_keys: Iterable[str]) -> None:
    key_set = set(known_keys)
    undefined = [ref for ref in collect_config_refs(expr) if ref not in key_set]
    if undefined:
        raise UndefinedKeyError(undefined)
