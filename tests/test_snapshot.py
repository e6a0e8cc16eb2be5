"""Tests for the snapshot store, `admit snapshots` and `admit replay`."""

from __future__ import annotations

import json
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from admit.commands.admission import EXIT_NOT_FOUND, EXIT_OK, AdmissionOptions
from admit.commands.replay import run_replay, run_snapshots
from admit.commands.run_cmd import LaunchOptions, run_exec
from admit.identity import compute_execution_id
from admit.snapshot import (
    ExecutionSnapshot,
    SnapshotStore,
    env_var_to_path,
    resolve_snapshot_dir,
    snapshot_environment,
    verify,
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _snapshot(command: str = "./server", args: tuple[str, ...] = (), age: timedelta = timedelta(0),
              environment: dict[str, str] | None = None, schema_path: str = "") -> ExecutionSnapshot:
    environment = environment if environment is not None else {"DB_ENV": "prod"}
    exec_id = compute_execution_id("sha256:cfg", command, args, environment, [env_var_to_path(k) for k in environment])
    return ExecutionSnapshot(
        execution_id=exec_id.execution_id,
        config_version="sha256:cfg",
        command=command,
        args=args,
        environment=environment,
        schema_path=schema_path,
        timestamp=NOW - age,
    )


@pytest.fixture
def store(tmp_path: Path) -> SnapshotStore:
    return SnapshotStore(tmp_path / "snapshots")


# -----------------------------------------------------------------------------
# store
# -----------------------------------------------------------------------------


def test_save_and_load(store: SnapshotStore) -> None:
    snap = _snapshot(args=("--port", "8080"))

    path = store.save(snap)

    assert ":" not in path.name
    assert store.load(snap.execution_id) == snap
    assert not list(store.dir.glob("*.tmp"))


def test_load_missing_returns_none(store: SnapshotStore) -> None:
    assert store.load("sha256:nope") is None


def test_list_skips_malformed_files(store: SnapshotStore) -> None:
    store.save(_snapshot())
    (store.dir / "broken.json").write_text("{not json", encoding="utf-8")
    (store.dir / "partial.json").write_text('{"command": "x"}', encoding="utf-8")

    summaries = store.list()

    assert [s.command for s in summaries] == ["./server"]


def test_prune_removes_only_old_snapshots(store: SnapshotStore) -> None:
    old = _snapshot(command="./old", age=timedelta(days=10))
    fresh = _snapshot(command="./fresh", age=timedelta(days=1))
    store.save(old)
    store.save(fresh)

    assert store.prune(timedelta(days=7), now=NOW) == 1
    assert store.load(old.execution_id) is None
    assert store.load(fresh.execution_id) == fresh


def test_delete(store: SnapshotStore) -> None:
    snap = _snapshot()
    store.save(snap)

    assert store.delete(snap.execution_id) is True
    assert store.delete(snap.execution_id) is False


def test_resolve_snapshot_dir_override(tmp_path: Path) -> None:
    assert resolve_snapshot_dir({"ADMIT_SNAPSHOT_DIR": str(tmp_path)}) == tmp_path
    assert resolve_snapshot_dir({}).parts[-2:] == (".admit", "snapshots")


def test_snapshot_environment_keeps_schema_vars() -> None:
    environ = {"DB_ENV": "prod", "HOME": "/root", "PAYMENTS_MODE": "live"}

    assert snapshot_environment(environ, ["db.env", "db.url", "payments.mode"]) == {
        "DB_ENV": "prod",
        "PAYMENTS_MODE": "live",
    }


def test_env_var_to_path() -> None:
    assert env_var_to_path("PAYMENTS_MODE") == "payments.mode"


def test_verify_detects_tampering(tmp_path: Path) -> None:
    schema_path = tmp_path / "admit.yaml"
    schema_path.write_text("config: {}\n", encoding="utf-8")
    snap = _snapshot(schema_path=str(schema_path))
    keys = [env_var_to_path(k) for k in snap.environment]

    assert verify(snap, keys).valid

    tampered = ExecutionSnapshot(**{**snap.__dict__, "environment": {"DB_ENV": "dev"}})
    assert verify(tampered, keys).id_mismatch

    schema_path.unlink()
    result = verify(snap, keys)
    assert result.valid
    assert result.schema_changed
    assert result.schema_message == "schema file no longer exists"


# -----------------------------------------------------------------------------
# run --snapshot / replay
# -----------------------------------------------------------------------------


def test_run_snapshot_then_replay(fixture_schema_path, prod_environ, tmp_path: Path, capsys) -> None:
    out_path = tmp_path / "seen"
    environ = {**prod_environ, "ADMIT_SNAPSHOT_DIR": str(tmp_path / "snaps")}
    command = (sys.executable, "-c", f"import os; open({str(out_path)!r}, 'a').write(os.environ['DB_ENV'] + '\\n')")

    exit_code = run_exec(
        fixture_schema_path, environ, command, AdmissionOptions(execution_id=True),
        launch_options=LaunchOptions(snapshot=True),
    )
    assert exit_code == 0
    execution_id = capsys.readouterr().out.strip()

    snap = SnapshotStore(tmp_path / "snaps").load(execution_id)
    assert snap is not None
    assert snap.command == sys.executable
    assert snap.environment == {
        "DB_URL": "postgres://db.internal:5432/app",
        "DB_ENV": "prod",
        "PAYMENTS_MODE": "live",
    }

    # replay restores the recorded values over whatever is set now
    replay_environ = {"ADMIT_SNAPSHOT_DIR": str(tmp_path / "snaps"), "DB_ENV": "dev"}
    assert run_replay(execution_id, replay_environ) == 0
    assert out_path.read_text(encoding="utf-8") == "prod\nprod\n"
    assert "Warning" not in capsys.readouterr().err


def test_replay_not_found(tmp_path: Path, capsys) -> None:
    exit_code = run_replay("sha256:nope", {"ADMIT_SNAPSHOT_DIR": str(tmp_path)})

    assert exit_code == EXIT_NOT_FOUND
    assert "snapshot not found: sha256:nope" in capsys.readouterr().err


def test_replay_dry_run(store: SnapshotStore, capsys) -> None:
    snap = _snapshot(args=("--port", "8080"))
    store.save(snap)

    exit_code = run_replay(snap.execution_id, {"ADMIT_SNAPSHOT_DIR": str(store.dir)}, dry_run=True)

    assert exit_code == EXIT_OK
    out = capsys.readouterr().out
    assert "Would execute: ./server --port 8080" in out
    assert "With environment:\n  DB_ENV=prod" in out


def test_replay_json(store: SnapshotStore, capsys) -> None:
    snap = _snapshot()
    store.save(snap)

    exit_code = run_replay(snap.execution_id, {"ADMIT_SNAPSHOT_DIR": str(store.dir)}, output_json=True)

    assert exit_code == EXIT_OK
    assert json.loads(capsys.readouterr().out)["executionId"] == snap.execution_id


def test_replay_warns_on_id_mismatch(store: SnapshotStore, capsys) -> None:
    snap = _snapshot()
    tampered = ExecutionSnapshot(**{**snap.__dict__, "environment": {"DB_ENV": "dev"}})
    store.save(tampered)

    exit_code = run_replay(snap.execution_id, {"ADMIT_SNAPSHOT_DIR": str(store.dir)}, dry_run=True)

    assert exit_code == EXIT_OK
    assert "execution ID mismatch" in capsys.readouterr().err


# -----------------------------------------------------------------------------
# snapshots command
# -----------------------------------------------------------------------------


def test_snapshots_empty(tmp_path: Path, capsys) -> None:
    environ = {"ADMIT_SNAPSHOT_DIR": str(tmp_path / "none")}

    assert run_snapshots(environ) == EXIT_OK
    assert capsys.readouterr().out == "No snapshots found\n"
    assert run_snapshots(environ, output_json=True) == EXIT_OK
    assert json.loads(capsys.readouterr().out) == []


def test_snapshots_list_json(store: SnapshotStore, capsys) -> None:
    snap = _snapshot()
    store.save(snap)

    run_snapshots({"ADMIT_SNAPSHOT_DIR": str(store.dir)}, output_json=True)

    listed = json.loads(capsys.readouterr().out)
    assert listed == [{"executionId": snap.execution_id, "command": "./server", "timestamp": NOW.isoformat()}]


def test_snapshots_delete(store: SnapshotStore, capsys) -> None:
    snap = _snapshot()
    store.save(snap)
    environ = {"ADMIT_SNAPSHOT_DIR": str(store.dir)}

    assert run_snapshots(environ, delete_id=snap.execution_id) == EXIT_OK
    assert f"Deleted snapshot: {snap.execution_id}" in capsys.readouterr().out
    assert run_snapshots(environ, delete_id=snap.execution_id) == EXIT_NOT_FOUND


def test_snapshots_prune(store: SnapshotStore, capsys) -> None:
    # timestamps far in the past relative to the wall clock
    store.save(_snapshot(command="./a", age=timedelta(days=3650)))
    store.save(ExecutionSnapshot(**{**_snapshot(command="./b").__dict__, "timestamp": datetime.now(timezone.utc)}))

    assert run_snapshots({"ADMIT_SNAPSHOT_DIR": str(store.dir)}, prune_days=30) == EXIT_OK
    assert "Pruned 1 snapshot(s) older than 30 days" in capsys.readouterr().out
    assert [s.command for s in store.list()] == ["./b"]
