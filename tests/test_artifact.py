"""Config artifact hashing and serialization."""

import hashlib
import json
from pathlib import Path

from admit.artifact import compute_config_version, generate_artifact, write_artifact
from admit.resolver import ResolvedValue


def _resolved(**values: str) -> list[ResolvedValue]:
    return [ResolvedValue(key=k, env_var=k.upper(), value=v, present=True) for k, v in values.items()]


def test_config_version_is_sha256_of_canonical_json():
    expected = hashlib.sha256(b'{"a":"1","b":"2"}').hexdigest()
    assert compute_config_version({"b": "2", "a": "1"}) == f"sha256:{expected}"


def test_empty_values_hash_empty_object():
    expected = hashlib.sha256(b"{}").hexdigest()
    assert compute_config_version({}) == f"sha256:{expected}"


def test_config_version_is_order_independent():
    assert compute_config_version({"x": "1", "y": "2"}) == compute_config_version({"y": "2", "x": "1"})


def test_config_version_changes_with_values():
    assert compute_config_version({"x": "1"}) != compute_config_version({"x": "2"})


def test_generate_artifact_skips_unset_values():
    resolved = _resolved(**{"db.url": "postgres://x"}) + [
        ResolvedValue(key="cache.ttl", env_var="CACHE_TTL", value="", present=False)
    ]
    artifact = generate_artifact(resolved)
    assert artifact.values == {"db.url": "postgres://x"}
    assert artifact.config_version == compute_config_version({"db.url": "postgres://x"})


def test_canonical_json_layout():
    artifact = generate_artifact(_resolved(b="2", a="1"))
    assert artifact.to_canonical_json() == (
        '{"configVersion":"' + artifact.config_version + '","values":{"a":"1","b":"2"}}'
    )


def test_write_artifact(tmp_path: Path):
    artifact = generate_artifact(_resolved(a="1"))
    path = tmp_path / "out" / "artifact.json"
    write_artifact(artifact, path)
    assert json.loads(path.read_text(encoding="utf-8")) == artifact.to_dict()
