"""Tests for baselines, drift detection and the baseline commands."""

from __future__ import annotations

import json
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

from admit import drift
from admit.baseline import Baseline, BaselineStore, command_string, resolve_baseline_dir
from admit.commands.admission import EXIT_NOT_FOUND, EXIT_OK, AdmissionOptions
from admit.commands.baseline_cmd import run_baseline_delete, run_baseline_list, run_baseline_show
from admit.commands.run_cmd import LaunchOptions, run_exec
from admit.drift import DriftType, KeyDrift

WHEN = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _baseline(name: str = "default", values: dict[str, str] | None = None, config_hash: str = "sha256:old") -> Baseline:
    return Baseline(
        name=name,
        execution_id="sha256:exec",
        config_hash=config_hash,
        config_values=values if values is not None else {"db.env": "prod", "payments.mode": "live"},
        command="./server --port 8080",
        timestamp=WHEN,
    )


@pytest.fixture
def baseline_dir(tmp_path: Path) -> Path:
    return tmp_path / "baselines"


# -----------------------------------------------------------------------------
# store
# -----------------------------------------------------------------------------


def test_save_and_load(baseline_dir: Path) -> None:
    store = BaselineStore(baseline_dir)
    baseline = _baseline(name="release/v2")

    path = store.save(baseline)

    assert path.name == "release_v2.json"
    assert store.load("release/v2") == baseline
    assert store.load("missing") is None


def test_list_and_delete(baseline_dir: Path) -> None:
    store = BaselineStore(baseline_dir)
    store.save(_baseline("a"))
    store.save(_baseline("b"))

    assert [s.name for s in store.list()] == ["a", "b"]
    assert store.delete("a") is True
    assert store.delete("a") is False
    assert [s.name for s in store.list()] == ["b"]


def test_resolve_baseline_dir(tmp_path: Path) -> None:
    assert resolve_baseline_dir({"ADMIT_BASELINE_DIR": str(tmp_path)}) == tmp_path
    assert resolve_baseline_dir({}).parts[-2:] == (".admit", "baselines")


def test_command_string() -> None:
    assert command_string("./server", ["--port", "8080"]) == "./server --port 8080"
    assert command_string("./server", []) == "./server"


# -----------------------------------------------------------------------------
# drift
# -----------------------------------------------------------------------------


def test_detect_no_drift_when_hash_matches() -> None:
    report = drift.detect(_baseline(config_hash="sha256:same"), {"db.env": "dev"}, "sha256:same")

    assert not report.has_drift
    assert drift.format_cli(report) == ""
    assert drift.format_ci(report) == ""


def test_detect_added_removed_changed() -> None:
    baseline = _baseline(values={"db.env": "prod", "cache.ttl": "60", "payments.mode": "live"})
    current = {"db.env": "staging", "payments.mode": "live", "db.url": "postgres://x"}

    report = drift.detect(baseline, current, "sha256:new")

    assert report.changes == [
        KeyDrift(key="cache.ttl", type=DriftType.REMOVED, baseline_value="60"),
        KeyDrift(key="db.env", type=DriftType.CHANGED, baseline_value="prod", current_value="staging"),
        KeyDrift(key="db.url", type=DriftType.ADDED, current_value="postgres://x"),
    ]


def test_format_cli() -> None:
    report = drift.detect(
        _baseline(values={"db.env": "prod", "cache.ttl": "60"}),
        {"db.env": "staging", "db.url": "postgres://x"},
        "sha256:new",
    )

    assert drift.format_cli(report) == (
        "⚠️  Configuration drift detected since last execution:\n"
        "  - cache.ttl: 60 → (removed)\n"
        "  ~ db.env: prod → staging\n"
        "  + db.url: (new) → postgres://x\n"
        "\n"
        "Execution continues.\n"
    )


def test_format_ci() -> None:
    report = drift.detect(_baseline(values={"db.env": "prod"}), {"db.env": "staging"}, "sha256:new")

    lines = drift.format_ci(report).splitlines()

    assert lines[0] == "::warning file=admit.yaml::Config drift: db.env changed from 'prod' to 'staging'"
    assert lines[-1] == "⚠️  Configuration drift detected: 1 change(s) since baseline 'default'"


def test_format_json_omits_empty_values() -> None:
    report = drift.detect(_baseline(values={}), {"db.env": "dev"}, "sha256:new")

    data = json.loads(drift.format_json(report))

    assert data == {
        "hasDrift": True,
        "baselineName": "default",
        "baselineHash": "sha256:old",
        "currentHash": "sha256:new",
        "baselineTime": WHEN.isoformat(),
        "changes": [{"key": "db.env", "type": "added", "currentValue": "dev"}],
    }


# -----------------------------------------------------------------------------
# run --baseline / --detect-drift
# -----------------------------------------------------------------------------


def test_run_records_baseline_then_reports_drift(fixture_schema_path, prod_environ, baseline_dir: Path, capsys) -> None:
    environ = {**prod_environ, "ADMIT_BASELINE_DIR": str(baseline_dir)}
    command = (sys.executable, "-c", "pass")

    assert run_exec(fixture_schema_path, environ, command, AdmissionOptions(),
                    launch_options=LaunchOptions(baseline="default")) == 0
    saved = BaselineStore(baseline_dir).load("default")
    assert saved is not None
    assert saved.config_values["db.env"] == "prod"
    assert saved.command == f"{sys.executable} -c pass"

    # unchanged config: nothing reported
    assert run_exec(fixture_schema_path, environ, command, AdmissionOptions(),
                    launch_options=LaunchOptions(detect_drift="default")) == 0
    assert "drift" not in capsys.readouterr().err

    changed = {**environ, "DB_URL": "postgres://replica.internal:5432/app", "CACHE_TTL": "60"}
    exit_code = run_exec(fixture_schema_path, changed, command, AdmissionOptions(),
                         launch_options=LaunchOptions(detect_drift="default"))

    assert exit_code == 0
    err = capsys.readouterr().err
    assert "Configuration drift detected since last execution" in err
    assert "+ cache.ttl: (new) → 60" in err
    assert "~ db.url: postgres://db.internal:5432/app → postgres://replica.internal:5432/app" in err


def test_drift_json_and_ci(fixture_schema_path, prod_environ, baseline_dir: Path, capsys) -> None:
    BaselineStore(baseline_dir).save(_baseline(name="nightly", values={"db.env": "prod"}))
    environ = {**prod_environ, "ADMIT_BASELINE_DIR": str(baseline_dir)}
    command = (sys.executable, "-c", "pass")

    run_exec(fixture_schema_path, environ, command, AdmissionOptions(),
             launch_options=LaunchOptions(detect_drift="nightly", drift_json=True))
    report = json.loads(capsys.readouterr().err)
    assert report["baselineName"] == "nightly"
    assert {c["key"] for c in report["changes"]} == {"db.url", "payments.mode"}

    run_exec(fixture_schema_path, environ, command, AdmissionOptions(ci=True),
             launch_options=LaunchOptions(detect_drift="nightly"))
    assert "::warning file=admit.yaml::Config drift: db.url added" in capsys.readouterr().err


def test_detect_drift_without_baseline_runs(fixture_schema_path, prod_environ, baseline_dir: Path, capsys) -> None:
    environ = {**prod_environ, "ADMIT_BASELINE_DIR": str(baseline_dir)}

    exit_code = run_exec(fixture_schema_path, environ, (sys.executable, "-c", "import sys; sys.exit(3)"),
                         AdmissionOptions(), launch_options=LaunchOptions(detect_drift="default"))

    assert exit_code == 3
    assert capsys.readouterr().err == ""


# -----------------------------------------------------------------------------
# baseline commands
# -----------------------------------------------------------------------------


def test_baseline_list(baseline_dir: Path, capsys) -> None:
    environ = {"ADMIT_BASELINE_DIR": str(baseline_dir)}

    assert run_baseline_list(environ) == EXIT_OK
    assert capsys.readouterr().out == "No baselines found\n"

    BaselineStore(baseline_dir).save(_baseline("nightly"))
    assert run_baseline_list(environ, output_json=True) == EXIT_OK
    assert json.loads(capsys.readouterr().out) == [
        {"name": "nightly", "configHash": "sha256:old", "command": "./server --port 8080", "timestamp": WHEN.isoformat()}
    ]

    assert run_baseline_list(environ) == EXIT_OK
    assert "nightly" in capsys.readouterr().out


def test_baseline_show(baseline_dir: Path, capsys) -> None:
    BaselineStore(baseline_dir).save(_baseline("nightly"))
    environ = {"ADMIT_BASELINE_DIR": str(baseline_dir)}

    assert run_baseline_show("nightly", environ) == EXIT_OK
    out = capsys.readouterr().out
    assert "Name:        nightly" in out
    assert "Config Values:\n  db.env: prod\n  payments.mode: live" in out

    assert run_baseline_show("nightly", environ, output_json=True) == EXIT_OK
    assert json.loads(capsys.readouterr().out)["configValues"] == {"db.env": "prod", "payments.mode": "live"}


def test_baseline_show_and_delete_missing(baseline_dir: Path, capsys) -> None:
    environ = {"ADMIT_BASELINE_DIR": str(baseline_dir)}

    assert run_baseline_show("nope", environ) == EXIT_NOT_FOUND
    assert run_baseline_delete("nope", environ) == EXIT_NOT_FOUND
    assert "baseline not found: nope" in capsys.readouterr().err


def test_baseline_delete(baseline_dir: Path, capsys) -> None:
    BaselineStore(baseline_dir).save(_baseline("nightly"))

    assert run_baseline_delete("nightly", {"ADMIT_BASELINE_DIR": str(baseline_dir)}) == EXIT_OK
    assert "Deleted baseline: nightly" in capsys.readouterr().out
    assert BaselineStore(baseline_dir).list() == []
