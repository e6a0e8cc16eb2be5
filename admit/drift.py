"""
Config drift against a stored baseline.

Drift is advisory: it is reported as a warning and never blocks execution.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping

from .baseline import Baseline

CI_ANNOTATION_FILE = "admit.yaml"


class DriftType(str, Enum):
    ADDED = "added"  # in current, not in baseline
    REMOVED = "removed"  # in baseline, not in current
    CHANGED = "changed"


@dataclass(frozen=True)
class KeyDrift:
    key: str
    type: DriftType
    baseline_value: str = ""
    current_value: str = ""

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"key": self.key, "type": self.type.value}
        if self.baseline_value:
            result["baselineValue"] = self.baseline_value
        if self.current_value:
            result["currentValue"] = self.current_value
        return result


@dataclass(frozen=True)
class DriftReport:
    baseline_name: str
    baseline_hash: str
    current_hash: str
    baseline_time: datetime
    changes: list[KeyDrift] = field(default_factory=list)

    @property
    def has_drift(self) -> bool:
        return bool(self.changes)

    def to_dict(self) -> dict[str, Any]:
        return {
            "hasDrift": self.has_drift,
            "baselineName": self.baseline_name,
            "baselineHash": self.baseline_hash,
            "currentHash": self.current_hash,
            "baselineTime": self.baseline_time.isoformat(),
            "changes": [c.to_dict() for c in self.changes],
        }


def detect(baseline: Baseline, current_values: Mapping[str, str], current_hash: str) -> DriftReport:
    """Per-key differences, sorted by key; equal hashes short-circuit to no drift."""
    changes: list[KeyDrift] = []
    if baseline.config_hash != current_hash:
        for key in sorted(set(baseline.config_values) | set(current_values)):
            in_baseline = key in baseline.config_values
            in_current = key in current_values
            old = baseline.config_values.get(key, "")
            new = current_values.get(key, "")
            if in_baseline and not in_current:
                changes.append(KeyDrift(key=key, type=DriftType.REMOVED, baseline_value=old))
            elif in_current and not in_baseline:
                changes.append(KeyDrift(key=key, type=DriftType.ADDED, current_value=new))
            elif old != new:
                changes.append(KeyDrift(key=key, type=DriftType.CHANGED, baseline_value=old, current_value=new))

    return DriftReport(
        baseline_name=baseline.name,
        baseline_hash=baseline.config_hash,
        current_hash=current_hash,
        baseline_time=baseline.timestamp,
        changes=changes,
    )


def format_cli(report: DriftReport) -> str:
    if not report.has_drift:
        return ""
    lines = ["⚠️  Configuration drift detected since last execution:"]
    for c in report.changes:
        if c.type is DriftType.ADDED:
            lines.append(f"  + {c.key}: (new) → {c.current_value}")
        elif c.type is DriftType.REMOVED:
            lines.append(f"  - {c.key}: {c.baseline_value} → (removed)")
        else:
            lines.append(f"  ~ {c.key}: {c.baseline_value} → {c.current_value}")
    lines.append("")
    lines.append("Execution continues.")
    return "\n".join(lines) + "\n"


def _ci_message(c: KeyDrift) -> str:
    if c.type is DriftType.ADDED:
        return f"Config drift: {c.key} added (value: {c.current_value})"
    if c.type is DriftType.REMOVED:
        return f"Config drift: {c.key} removed (was: {c.baseline_value})"
    return f"Config drift: {c.key} changed from '{c.baseline_value}' to '{c.current_value}'"


def format_ci(report: DriftReport) -> str:
    """GitHub Actions warning annotations followed by a summary line."""
    if not report.has_drift:
        return ""
    lines = [f"::warning file={CI_ANNOTATION_FILE}::{_ci_message(c)}" for c in report.changes]
    lines.append("")
    lines.append(
        f"⚠️  Configuration drift detected: {len(report.changes)} change(s) since baseline '{report.baseline_name}'"
    )
    return "\n".join(lines) + "\n"


def format_json(report: DriftReport) -> str:
    return json.dumps(report.to_dict(), indent=2, ensure_ascii=False)
