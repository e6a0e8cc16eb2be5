"""
Config artifact: the resolved values plus a content hash.

The hash is taken over canonical JSON (sorted keys, no whitespace), so the
same values always produce the same config_version.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

from .resolver import ResolvedValue, config_values


def canonical_json(data: dict) -> str:
    return json.dumps(data, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def hash_bytes(data: bytes) -> str:
    """Digest in "sha256:<hex>" form, used by every identifier admit emits."""
    return "sha256:" + hashlib.sha256(data).hexdigest()


def hash_text(text: str) -> str:
    return hash_bytes(text.encode("utf-8"))


def compute_config_version(values: dict[str, str]) -> str:
    return hash_text(canonical_json(values))


@dataclass(frozen=True)
class ConfigArtifact:
    config_version: str
    values: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"configVersion": self.config_version, "values": dict(self.values)}

    def to_canonical_json(self) -> str:
        return canonical_json(self.to_dict())

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, sort_keys=True, ensure_ascii=False)


def generate_artifact(resolved: Iterable[ResolvedValue]) -> ConfigArtifact:
    """Artifact over the values that are set; unset keys are left out."""
    values = config_values(resolved)
    return ConfigArtifact(config_version=compute_config_version(values), values=values)


def write_artifact(artifact: ConfigArtifact, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(artifact.to_json() + "\n", encoding="utf-8")
