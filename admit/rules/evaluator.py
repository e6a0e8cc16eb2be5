"""
Invariant evaluation.

Evaluation is a pure walk over the AST. A rule that does not hold is an
ordinary result with passed=False, never an exception.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, NamedTuple

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


@dataclass(frozen=True)
class EvalContext:
    config_values: dict[str, str] = field(default_factory=dict)
    execution_env: str = ""  # ADMIT_ENV


class _Outcome(NamedTuple):
    passed: bool
    left: str = ""
    right: str = ""
    message: str = ""


def evaluate(invariant: Invariant, ctx: EvalContext) -> InvariantResult:
    outcome = _eval_expr(invariant.expr, ctx)
    return InvariantResult(
        name=invariant.name,
        rule=invariant.rule,
        passed=outcome.passed,
        left_value=outcome.left,
        right_value=outcome.right,
        message=outcome.message,
    )


def evaluate_all(invariants: Iterable[Invariant], ctx: EvalContext) -> list[InvariantResult]:
    """Evaluate every invariant, in order; failures do not stop the walk."""
    return [evaluate(inv, ctx) for inv in invariants]


def has_violations(results: Iterable[InvariantResult]) -> bool:
    return any(not r.passed for r in results)


def get_violations(results: Iterable[InvariantResult]) -> list[InvariantResult]:
    return [r for r in results if not r.passed]


def _eval_expr(expr: RuleExpr, ctx: EvalContext) -> _Outcome:
    if isinstance(expr, Implication):
        return _eval_implication(expr, ctx)
    if isinstance(expr, Comparison):
        return _eval_comparison(expr, ctx)
    if isinstance(expr, (ConfigRef, ExecutionEnv)):
        # A bare reference holds when it resolves to a non-empty value.
        value = _resolve(expr, ctx)
        return _Outcome(value != "", value)
    if isinstance(expr, StringLiteral):
        return _Outcome(True, expr.value)
    raise TypeError(f"not a rule expression: {expr!r}")


def _eval_implication(impl: Implication, ctx: EvalContext) -> _Outcome:
    ant = _eval_expr(impl.antecedent, ctx)
    con = _eval_expr(impl.consequent, ctx)

    passed = not ant.passed or con.passed
    left = ant.left or ant.right
    right = con.left or con.right

    message = ""
    if not passed:
        message = (
            f"condition '{format_rule(impl.antecedent)}' is true "
            f"but '{format_rule(impl.consequent)}' is false"
        )
    return _Outcome(passed, left, right, message)


def _eval_comparison(comp: Comparison, ctx: EvalContext) -> _Outcome:
    left = _resolve(comp.left, ctx)
    right = _resolve(comp.right, ctx)

    if comp.operator is CompOp.EQUAL:
        passed = left == right
        message = "" if passed else f"'{left}' != '{right}'"
    elif comp.operator is CompOp.NOT_EQUAL:
        passed = left != right
        message = "" if passed else f"'{left}' == '{right}'"
    else:
        passed, message = False, f"unknown operator: {comp.operator}"
    return _Outcome(passed, left, right, message)


def _resolve(expr: RuleExpr, ctx: EvalContext) -> str:
    """String value of an operand; nested rules resolve to "true"/"false"."""
    if isinstance(expr, ConfigRef):
        return ctx.config_values.get(expr.path, "")
    if isinstance(expr, ExecutionEnv):
        return ctx.execution_env
    if isinstance(expr, StringLiteral):
        return expr.value
    if isinstance(expr, Comparison):
        return "true" if _eval_comparison(expr, ctx).passed else "false"
    if isinstance(expr, Implication):
        return "true" if _eval_implication(expr, ctx).passed else "false"
    raise TypeError(f"not a rule expression: {expr!r}")
