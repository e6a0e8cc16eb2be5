"""
Contract evaluation.

Deny rules are checked first and a matching deny shadows the allow rule for
that key. Keys the contract does not mention always pass. Every supplied
value is checked; violations are collected, not short-circuited.
"""

from __future__ import annotations

from typing import Mapping

from .glob import match_glob
from .schema import Contract, ContractRule, EvalResult, Violation


def evaluate(contract: Contract, config_values: Mapping[str, str]) -> EvalResult:
    violations: list[Violation] = []

    for key, value in config_values.items():
        deny_rule = contract.deny.get(key)
        if deny_rule is not None:
            violation = check_deny_rule(key, value, deny_rule)
            if violation is not None:
                violations.append(violation)
                continue

        allow_rule = contract.allow.get(key)
        if allow_rule is not None:
            violation = check_allow_rule(key, value, allow_rule)
            if violation is not None:
                violations.append(violation)

    return EvalResult(environment=contract.name, violations=violations)


def check_allow_rule(key: str, value: str, rule: ContractRule) -> Violation | None:
    """Allow lists are exact matches; `*` has no special meaning here."""
    if value in rule.values:
        return None
    return Violation(
        key=key,
        actual_value=value,
        rule_type="allow",
        expected_values=tuple(rule.values),
    )


def check_deny_rule(key: str, value: str, rule: ContractRule) -> Violation | None:
    """First matching pattern, in declared order, produces the violation."""
    for pattern in rule.values:
        matches = match_glob(pattern, value) if rule.is_glob else pattern == value
        if matches:
            return Violation(
                key=key,
                actual_value=value,
                rule_type="deny",
                expected_values=tuple(rule.values),
                pattern=pattern,
            )
    return None
