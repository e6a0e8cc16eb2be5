"""Text, CI-annotation and JSON renderings of contract results."""

from __future__ import annotations

import json
from typing import Sequence

from .schema import EvalResult, Violation

CI_ANNOTATION_FILE = "admit.yaml"


def format_values(values: Sequence[str]) -> str:
    if not values:
        return "(none)"
    if len(values) == 1:
        return values[0]
    return "[" + ", ".join(values) + "]"


def format_cli(result: EvalResult) -> str:
    if result.passed:
        return ""

    lines = [f"❌ Contract violations for environment '{result.environment}':", ""]
    for v in result.violations:
        lines.append(f"  Key: {v.key}")
        lines.append(f"  Value: {v.actual_value}")
        lines.append(f"  Rule: {v.rule_type}")
        if v.rule_type == "allow":
            lines.append(f"  Expected: {format_values(v.expected_values)}")
        elif v.pattern:
            lines.append(f"  Forbidden: {format_values(v.expected_values)} (matched pattern: {v.pattern})")
        else:
            lines.append(f"  Forbidden: {format_values(v.expected_values)}")
        lines.append("")
    lines.append(f"Execution blocked: {len(result.violations)} violation(s)")
    return "\n".join(lines) + "\n"


def _ci_message(v: Violation) -> str:
    if v.rule_type == "allow":
        return (
            f"Contract violation: {v.key} has value '{v.actual_value}', "
            f"expected one of: {format_values(v.expected_values)}"
        )
    if v.pattern:
        return f"Contract violation: {v.key} has forbidden value '{v.actual_value}' (matched pattern: {v.pattern})"
    return f"Contract violation: {v.key} has forbidden value '{v.actual_value}'"


def format_ci(result: EvalResult) -> str:
    """GitHub Actions error annotations followed by a summary line."""
    if result.passed:
        return ""
    lines = [f"::error file={CI_ANNOTATION_FILE}::{_ci_message(v)}" for v in result.violations]
    lines.append("")
    lines.append(
        f"❌ Contract violations for environment '{result.environment}': {len(result.violations)} violation(s)"
    )
    return "\n".join(lines) + "\n"


def format_json(result: EvalResult) -> str:
    return json.dumps(result.to_dict(), indent=2)
