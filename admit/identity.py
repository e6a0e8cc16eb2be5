"""
Identities for an admitted execution.

Two fingerprints are available:

- CodeIdentity pairs a hash of the target executable's bytes with the config
  version ("this binary ran with this config").
- ExecutionIdentity hashes the config version, the full command line and the
  schema-declared environment variables ("exactly this ran").

Both use the "sha256:<hex>" digest format of the config artifact.
"""

from __future__ import annotations

import json
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Mapping, Sequence

from .artifact import ConfigArtifact, hash_bytes, hash_text
from .resolver import path_to_env_var


def _write_json(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text + "\n", encoding="utf-8")


@dataclass(frozen=True)
class CodeIdentity:
    code_hash: str
    config_hash: str
    execution_id: str  # code_hash + ":" + config_hash

    def to_dict(self) -> dict[str, Any]:
        return {
            "codeHash": self.code_hash,
            "configHash": self.config_hash,
            "executionId": self.execution_id,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    def short(self) -> str:
        return self.execution_id

    def write(self, path: Path) -> None:
        _write_json(path, self.to_json())


def compute_code_hash(target: str) -> str:
    """
    Hash the executable that `target` resolves to on PATH.

    Targets that cannot be located or read (shell builtins, missing files)
    fall back to a hash of the target string itself.
    """
    exec_path = shutil.which(target)
    if exec_path is None:
        return hash_text(target)
    try:
        content = Path(exec_path).resolve().read_bytes()
    except OSError:
        return hash_text(target)
    return hash_bytes(content)


def compute_code_identity(target: str, artifact: ConfigArtifact) -> CodeIdentity:
    code_hash = compute_code_hash(target)
    return CodeIdentity(
        code_hash=code_hash,
        config_hash=artifact.config_version,
        execution_id=f"{code_hash}:{artifact.config_version}",
    )


@dataclass(frozen=True)
class ExecutionIdentity:
    execution_id: str
    config_version: str
    command_hash: str
    environment_hash: str
    command: str
    args: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "executionId": self.execution_id,
            "configVersion": self.config_version,
            "commandHash": self.command_hash,
            "environmentHash": self.environment_hash,
            "command": self.command,
            "args": list(self.args),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False)

    def short(self) -> str:
        return self.execution_id

    def write(self, path: Path) -> None:
        _write_json(path, self.to_json())


def compute_command_hash(command: str, args: Sequence[str]) -> str:
    # NUL cannot occur in argv, so the joined form is unambiguous.
    return hash_text("\x00".join([command, *args]))


def compute_environment_hash(environ: Mapping[str, str], schema_keys: Iterable[str]) -> str:
    """Hash the KEY=VALUE entries of schema-declared variables only, sorted."""
    wanted = {path_to_env_var(key) for key in schema_keys}
    entries = sorted(f"{name}={value}" for name, value in environ.items() if name in wanted)
    return hash_text("\x00".join(entries))


def compute_execution_id(
    config_version: str,
    command: str,
    args: Sequence[str],
    environ: Mapping[str, str],
    schema_keys: Iterable[str],
) -> ExecutionIdentity:
    command_hash = compute_command_hash(command, args)
    environment_hash = compute_environment_hash(environ, schema_keys)
    return ExecutionIdentity(
        execution_id=hash_text(config_version + command_hash + environment_hash),
        config_version=config_version,
        command_hash=command_hash,
        environment_hash=environment_hash,
        command=command,
        args=tuple(args),
    )
