from __future__ import annotations

from .expr import Comparison, ConfigRef, ExecutionEnv, Implication, RuleExpr, StringLiteral


def format_rule(expr: RuleExpr) -> str:
    """Render an AST in canonical rule syntax; parse_rule() inverts this."""
    if isinstance(expr, Implication):
        return f"{format_rule(expr.antecedent)} => {format_rule(expr.consequent)}"
    if isinstance(expr, Comparison):
        return f"{format_rule(expr.left)} {expr.operator.value} {format_rule(expr.right)}"
    if isinstance(expr, ConfigRef):
        return expr.path
    if isinstance(expr, ExecutionEnv):
        return "execution.env"
    if isinstance(expr, StringLiteral):
        # Embedded quotes are not escaped.
        return f'"{expr.value}"'
    raise TypeError(f"not a rule expression: {expr!r}")
