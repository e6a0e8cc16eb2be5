"""Named baselines: known-good config states that later runs are compared against."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Mapping

from .store import JsonDirStore, resolve_store_dir

logger = logging.getLogger(__name__)

BASELINE_DIR_ENV = "ADMIT_BASELINE_DIR"
DEFAULT_BASELINE = "default"


@dataclass(frozen=True)
class Baseline:
    name: str
    execution_id: str
    config_hash: str  # configVersion of the artifact
    config_values: dict[str, str] = field(default_factory=dict)
    command: str = ""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "executionId": self.execution_id,
            "configHash": self.config_hash,
            "configValues": dict(self.config_values),
            "command": self.command,
            "timestamp": self.timestamp.isoformat(),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Baseline:
        return cls(
            name=data["name"],
            execution_id=data.get("executionId", ""),
            config_hash=data.get("configHash", ""),
            config_values=dict(data.get("configValues") or {}),
            command=data.get("command", ""),
            timestamp=datetime.fromisoformat(data["timestamp"]),
        )


@dataclass(frozen=True)
class BaselineSummary:
    name: str
    config_hash: str
    command: str
    timestamp: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "configHash": self.config_hash,
            "command": self.command,
            "timestamp": self.timestamp.isoformat(),
        }


class BaselineStore(JsonDirStore):
    def _stem(self, record_id: str) -> str:
        return record_id.replace("/", "_").replace("\\", "_")

    def save(self, baseline: Baseline) -> Path:
        return self.write_document(baseline.name, baseline.to_dict())

    def load(self, name: str) -> Baseline | None:
        data = self.read_document(name)
        return Baseline.from_dict(data) if data is not None else None

    def delete(self, name: str) -> bool:
        return self.delete_document(name)

    def list(self) -> list[BaselineSummary]:
        summaries = []
        for path, data in self.iter_documents():
            try:
                b = Baseline.from_dict(data)
            except (KeyError, TypeError, ValueError) as e:
                logger.debug("skipping malformed baseline %s: %s", path, e)
                continue
            summaries.append(
                BaselineSummary(name=b.name, config_hash=b.config_hash, command=b.command, timestamp=b.timestamp)
            )
        return summaries


def resolve_baseline_dir(environ: Mapping[str, str]) -> Path:
    return resolve_store_dir(environ, BASELINE_DIR_ENV, "baselines")


def command_string(command: str, args: Iterable[str]) -> str:
    return " ".join([command, *args])
