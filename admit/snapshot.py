"""
Execution snapshots: everything needed to run an admitted command again.

`admit run --snapshot` saves one per execution, keyed by execution id;
`admit replay <id>` loads it, verifies it and re-executes.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Iterable, Mapping

from .identity import compute_execution_id
from .resolver import path_to_env_var
from .store import JsonDirStore, resolve_store_dir

logger = logging.getLogger(__name__)

SNAPSHOT_DIR_ENV = "ADMIT_SNAPSHOT_DIR"


@dataclass(frozen=True)
class ExecutionSnapshot:
    execution_id: str
    config_version: str
    command: str
    args: tuple[str, ...] = ()
    environment: dict[str, str] = field(default_factory=dict)  # ENV_VAR -> value, schema keys only
    schema_path: str = ""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        return {
            "executionId": self.execution_id,
            "configVersion": self.config_version,
            "command": self.command,
            "args": list(self.args),
            "environment": dict(self.environment),
            "schemaPath": self.schema_path,
            "timestamp": self.timestamp.isoformat(),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExecutionSnapshot:
        return cls(
            execution_id=data["executionId"],
            config_version=data.get("configVersion", ""),
            command=data.get("command", ""),
            args=tuple(data.get("args") or ()),
            environment=dict(data.get("environment") or {}),
            schema_path=data.get("schemaPath", ""),
            timestamp=datetime.fromisoformat(data["timestamp"]),
        )


@dataclass(frozen=True)
class SnapshotSummary:
    execution_id: str
    command: str
    timestamp: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "executionId": self.execution_id,
            "command": self.command,
            "timestamp": self.timestamp.isoformat(),
        }


class SnapshotStore(JsonDirStore):
    def _stem(self, record_id: str) -> str:
        # "sha256:ab.." is not a portable filename
        return record_id.replace(":", "_")

    def save(self, snap: ExecutionSnapshot) -> Path:
        return self.write_document(snap.execution_id, snap.to_dict())

    def load(self, execution_id: str) -> ExecutionSnapshot | None:
        data = self.read_document(execution_id)
        return ExecutionSnapshot.from_dict(data) if data is not None else None

    def delete(self, execution_id: str) -> bool:
        return self.delete_document(execution_id)

    def _snapshots(self) -> Iterable[tuple[Path, ExecutionSnapshot]]:
        for path, data in self.iter_documents():
            try:
                yield path, ExecutionSnapshot.from_dict(data)
            except (KeyError, TypeError, ValueError) as e:
                logger.debug("skipping malformed snapshot %s: %s", path, e)

    def list(self) -> list[SnapshotSummary]:
        return [
            SnapshotSummary(execution_id=s.execution_id, command=s.command, timestamp=s.timestamp)
            for _, s in self._snapshots()
        ]

    def prune(self, older_than: timedelta, now: datetime | None = None) -> int:
        """Delete snapshots taken before now - older_than; returns how many went."""
        cutoff = (now or datetime.now(timezone.utc)) - older_than
        deleted = 0
        for path, snap in list(self._snapshots()):
            if snap.timestamp < cutoff:
                try:
                    path.unlink()
                except OSError as e:
                    logger.debug("cannot prune %s: %s", path, e)
                    continue
                deleted += 1
        return deleted


def resolve_snapshot_dir(environ: Mapping[str, str]) -> Path:
    return resolve_store_dir(environ, SNAPSHOT_DIR_ENV, "snapshots")


def snapshot_environment(environ: Mapping[str, str], schema_keys: Iterable[str]) -> dict[str, str]:
    """The schema-declared variables that are set, by env var name."""
    result: dict[str, str] = {}
    for key in schema_keys:
        env_var = path_to_env_var(key)
        if env_var in environ:
            result[env_var] = environ[env_var]
    return result


def env_var_to_path(env_var: str) -> str:
    """Best-effort inverse of path_to_env_var: "DB_URL" -> "db.url"."""
    return env_var.replace("_", ".").lower()


@dataclass(frozen=True)
class VerifyResult:
    id_mismatch: bool = False
    schema_changed: bool = False
    schema_message: str = ""

    @property
    def valid(self) -> bool:
        return not self.id_mismatch


def verify(snap: ExecutionSnapshot, schema_keys: Iterable[str]) -> VerifyResult:
    """Recompute the execution id from the snapshot and check the schema file is still there."""
    computed = compute_execution_id(
        snap.config_version,
        snap.command,
        snap.args,
        snap.environment,
        schema_keys,
    )
    id_mismatch = computed.execution_id != snap.execution_id

    schema_changed = bool(snap.schema_path) and not Path(snap.schema_path).exists()
    return VerifyResult(
        id_mismatch=id_mismatch,
        schema_changed=schema_changed,
        schema_message="schema file no longer exists" if schema_changed else "",
    )
