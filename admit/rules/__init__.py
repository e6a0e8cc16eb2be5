"""Invariant rule language: lexer, parser, formatter and evaluator."""

from .errors import RuleSyntaxError, UndefinedKeyError
from .evaluator import EvalContext, evaluate, evaluate_all, get_violations, has_violations
from .expr import (
    CompOp,
    Comparison,
    ConfigRef,
    ExecutionEnv,
    Implication,
    Invariant,
    InvariantResult,
    RuleExpr,
    StringLiteral,
)
from .formatter import format_rule
from .parser import collect_config_refs, parse_rule, validate_rule_refs

__all__ = [
    # AST
    "RuleExpr",
    "Implication",
    "Comparison",
    "CompOp",
    "ConfigRef",
    "ExecutionEnv",
    "StringLiteral",
    "Invariant",
    "InvariantResult",
    # Parsing
    "parse_rule",
    "validate_rule_refs",
    "collect_config_refs",
    "format_rule",
    "RuleSyntaxError",
    "UndefinedKeyError",
    # Evaluation
    "EvalContext",
    "evaluate",
    "evaluate_all",
    "has_violations",
    "get_violations",
]
