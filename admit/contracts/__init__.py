"""Per-environment contracts: allow lists and deny patterns over config values."""

from .evaluator import check_allow_rule, check_deny_rule, evaluate
from .glob import match_glob
from .schema import Contract, ContractRule, EvalResult, Violation

__all__ = [
    "Contract",
    "ContractRule",
    "Violation",
    "EvalResult",
    "evaluate",
    "check_allow_rule",
    "check_deny_rule",
    "match_glob",
]
