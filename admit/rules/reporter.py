"""Text, CI-annotation and JSON renderings of invariant results."""

from __future__ import annotations

import json
from typing import Sequence

from .evaluator import get_violations
from .expr import InvariantResult

CI_ANNOTATION_FILE = "admit.yaml"


def format_violation(result: InvariantResult) -> str:
    lines = [
        f"INVARIANT VIOLATION: '{result.name}'",
        f"  Rule: {result.rule}",
    ]
    if result.left_value or result.right_value:
        lines.append(f"  Values: left='{result.left_value}', right='{result.right_value}'")
    if result.message:
        lines.append(f"  Reason: {result.message}")
    return "\n".join(lines) + "\n"


def format_violations(results: Sequence[InvariantResult]) -> str:
    """All failing results, with a count header; empty string when none failed."""
    violations = get_violations(results)
    if not violations:
        return ""
    parts = [f"Invariant check failed: {len(violations)} violation(s)\n\n"]
    for v in violations:
        parts.append(format_violation(v))
        parts.append("\n")
    return "".join(parts)


def format_ci(results: Sequence[InvariantResult]) -> str:
    """GitHub Actions error annotations, one per failing invariant."""
    violations = get_violations(results)
    if not violations:
        return ""
    lines = [
        f"::error file={CI_ANNOTATION_FILE}::INVARIANT VIOLATION: '{v.name}' - {v.message}"
        for v in violations
    ]
    lines.append("")
    lines.append(f"❌ Invariant check failed: {len(violations)} violation(s)")
    return "\n".join(lines) + "\n"


def to_report(results: Sequence[InvariantResult]) -> dict:
    failed = len(get_violations(results))
    return {
        "invariants": [r.to_dict() for r in results],
        "allPassed": failed == 0,
        "failedCount": failed,
    }


def format_json(results: Sequence[InvariantResult]) -> str:
    return json.dumps(to_report(results), indent=2)
