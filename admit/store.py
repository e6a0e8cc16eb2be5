"""
Directory-backed JSON record stores.

Each record is one pretty-printed JSON file named after its id:

    ~/.admit/snapshots/sha256_ab12....json
    ~/.admit/baselines/default.json

Missing records read as None; listing skips files that are unreadable or not
valid JSON.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterator, Mapping

logger = logging.getLogger(__name__)


def resolve_store_dir(environ: Mapping[str, str], env_var: str, name: str) -> Path:
    """`env_var` when set, else ~/.admit/<name>."""
    override = environ.get(env_var)
    if override:
        return Path(override)
    try:
        return Path.home() / ".admit" / name
    except RuntimeError:
        return Path(".admit") / name


class JsonDirStore:
    """Base class: subclasses map record ids to file stems."""

    def __init__(self, directory: Path):
        self.dir = directory

    def _stem(self, record_id: str) -> str:
        return record_id

    def path(self, record_id: str) -> Path:
        return self.dir / f"{self._stem(record_id)}.json"

    def exists(self, record_id: str) -> bool:
        return self.path(record_id).exists()

    def write_document(self, record_id: str, data: dict[str, Any]) -> Path:
        self.dir.mkdir(parents=True, exist_ok=True)
        path = self.path(record_id)
        # Write to a temp file and rename so readers never see a partial record.
        temp_path = path.with_suffix(".tmp")
        temp_path.write_text(json.dumps(data, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
        temp_path.replace(path)
        return path

    def read_document(self, record_id: str) -> dict[str, Any] | None:
        path = self.path(record_id)
        if not path.exists():
            return None
        return json.loads(path.read_text(encoding="utf-8"))

    def delete_document(self, record_id: str) -> bool:
        try:
            self.path(record_id).unlink()
        except FileNotFoundError:
            return False
        return True

    def iter_documents(self) -> Iterator[tuple[Path, dict[str, Any]]]:
        if not self.dir.is_dir():
            return
        for path in sorted(self.dir.glob("*.json")):
            if not path.is_file():
                continue
            try:
                data = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as e:
                logger.debug("skipping %s: %s", path, e)
                continue
            if isinstance(data, dict):
                yield path, data
