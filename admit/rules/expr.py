"""
Rule expression AST.

The AST is a closed union of five node types. Nodes are frozen dataclasses,
so two trees compare equal exactly when they are structurally equal.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class CompOp(str, Enum):
    EQUAL = "=="
    NOT_EQUAL = "!="


@dataclass(frozen=True)
class Implication:
    """`antecedent => consequent`: holds unless the antecedent holds and the consequent does not."""

    antecedent: RuleExpr
    consequent: RuleExpr


@dataclass(frozen=True)
class Comparison:
    left: RuleExpr
    right: RuleExpr
    operator: CompOp


@dataclass(frozen=True)
class ConfigRef:
    path: str  # dot notation, e.g. "db.url"


@dataclass(frozen=True)
class ExecutionEnv:
    """The ambient deployment environment tag (ADMIT_ENV), not a config key."""


@dataclass(frozen=True)
class StringLiteral:
    value: str


RuleExpr = Implication | Comparison | ConfigRef | ExecutionEnv | StringLiteral


@dataclass(frozen=True)
class Invariant:
    """A named rule, parsed once at schema load."""

    name: str
    rule: str  # rule text as written in the schema
    expr: RuleExpr


@dataclass(frozen=True)
class InvariantResult:
    name: str
    rule: str
    passed: bool
    left_value: str = ""
    right_value: str = ""
    message: str = ""

    def to_dict(self) -> dict[str, object]:
        return {
            "name": self.name,
            "rule": self.rule,
            "passed": self.passed,
            "leftValue": self.left_value,
            "rightValue": self.right_value,
            "message": self.message,
        }
