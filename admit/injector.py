"""Hand the config artifact to the target process, as a file or an env var."""

from __future__ import annotations

from pathlib import Path
from typing import Mapping

from .artifact import ConfigArtifact, write_artifact


def inject_file(artifact: ConfigArtifact, path: Path) -> Path:
    """Write the artifact for the target to read; relative paths resolve against the cwd."""
    target = path if path.is_absolute() else Path.cwd() / path
    write_artifact(artifact, target)
    return target


def inject_env(artifact: ConfigArtifact, environ: Mapping[str, str], var_name: str) -> dict[str, str]:
    """A copy of `environ` with the artifact JSON under `var_name`, replacing any existing value."""
    result = dict(environ)
    result[var_name] = artifact.to_json()
    return result
