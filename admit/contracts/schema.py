from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

RuleType = Literal["allow", "deny"]


@dataclass(frozen=True)
class ContractRule:
    """Exact values (allow) or patterns (deny) for one config key."""

    values: tuple[str, ...]
    is_glob: bool = False  # deny only


@dataclass(frozen=True)
class Contract:
    name: str  # environment name, e.g. "prod"
    allow: dict[str, ContractRule] = field(default_factory=dict)
    deny: dict[str, ContractRule] = field(default_factory=dict)


@dataclass(frozen=True)
class Violation:
    key: str
    actual_value: str
    rule_type: RuleType
    expected_values: tuple[str, ...]
    pattern: str = ""  # deny only: the pattern that matched

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "actualValue": self.actual_value,
            "ruleType": self.rule_type,
            "expectedValues": list(self.expected_values),
            "pattern": self.pattern,
        }


@dataclass(frozen=True)
class EvalResult:
    environment: str
    violations: list[Violation] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not self.violations

    def to_dict(self) -> dict[str, Any]:
        return {
            "environment": self.environment,
            "passed": self.passed,
            "violations": [v.to_dict() for v in self.violations],
        }
