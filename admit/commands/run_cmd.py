"""Run command implementation: admit the config, then execute the target."""

from __future__ import annotations

import logging
import shlex
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Sequence

from rich.console import Console

from .. import drift
from ..baseline import Baseline, BaselineStore, command_string, resolve_baseline_dir
from ..identity import compute_code_identity
from ..injector import inject_env, inject_file
from ..snapshot import ExecutionSnapshot, SnapshotStore, resolve_snapshot_dir, snapshot_environment
from .admission import (
    EXIT_INVALID,
    EXIT_OK,
    Admission,
    AdmissionOptions,
    emit_execution_id,
    execution_identity,
    is_ci_mode,
    print_json,
    run_admission,
)

logger = logging.getLogger(__name__)

# Shell conventions.
EXIT_COMMAND_NOT_EXECUTABLE = 126
EXIT_COMMAND_NOT_FOUND = 127


@dataclass(frozen=True)
class LaunchOptions:
    """What `run` does between admission and exec."""

    identity: bool = False
    identity_file: Path | None = None
    identity_short: bool = False
    execution_id_env: str | None = None
    inject_file: Path | None = None
    inject_env: str | None = None
    snapshot: bool = False
    baseline: str | None = None
    detect_drift: str | None = None
    drift_json: bool = False


def launch(command: Sequence[str], environ: Mapping[str, str], console: Console) -> int:
    """Execute `command` with exactly `environ`; returns its exit code or a shell-style failure code."""
    try:
        completed = subprocess.run(list(command), env=dict(environ), check=False)
    except FileNotFoundError:
        console.print(f"Error: command not found: {command[0]}", style="bold red", markup=False, highlight=False)
        return EXIT_COMMAND_NOT_FOUND
    except PermissionError:
        console.print(f"Error: permission denied: {command[0]}", style="bold red", markup=False, highlight=False)
        return EXIT_COMMAND_NOT_EXECUTABLE
    except OSError as e:
        console.print(f"Error: {command[0]}: {e}", style="bold red", markup=False, highlight=False)
        return EXIT_INVALID
    return completed.returncode


def _fail(console: Console, message: str) -> int:
    console.print(message, style="bold red", markup=False, highlight=False, soft_wrap=True)
    return EXIT_INVALID


def _prepare_launch(
    adm: Admission,
    environ: dict[str, str],
    command: Sequence[str],
    options: AdmissionOptions,
    launch_options: LaunchOptions,
    console: Console,
) -> int:
    """Identity, injection, snapshot, baseline and drift steps; mutates `environ` for the child."""
    artifact = adm.artifact
    schema_keys = adm.schema.keys if adm.schema else []
    target, args = command[0], list(command[1:])

    if launch_options.identity or launch_options.identity_file or launch_options.identity_short:
        code_id = compute_code_identity(target, artifact)
        if launch_options.identity_file is not None:
            try:
                code_id.write(launch_options.identity_file)
            except OSError as e:
                return _fail(console, f"Error: cannot write identity: {launch_options.identity_file}: {e}")
        if launch_options.identity_short:
            print(code_id.short())
        elif launch_options.identity:
            print(code_id.to_json())

    if options.execution_id or options.execution_id_json or options.execution_id_file or launch_options.execution_id_env:
        exec_id = execution_identity(adm, environ, target, args)
        exit_code = emit_execution_id(exec_id, options)
        if exit_code:
            return exit_code
        if launch_options.execution_id_env:
            environ[launch_options.execution_id_env] = exec_id.short()

    if launch_options.inject_file is not None:
        try:
            inject_file(artifact, launch_options.inject_file)
        except OSError as e:
            return _fail(console, f"Error: cannot write config: {launch_options.inject_file}: {e}")

    if launch_options.inject_env:
        environ.update(inject_env(artifact, environ, launch_options.inject_env))

    if launch_options.snapshot:
        exec_id = execution_identity(adm, environ, target, args)
        snap = ExecutionSnapshot(
            execution_id=exec_id.execution_id,
            config_version=artifact.config_version,
            command=target,
            args=tuple(args),
            environment=snapshot_environment(environ, schema_keys),
            schema_path=str(adm.schema_path),
        )
        try:
            path = SnapshotStore(resolve_snapshot_dir(environ)).save(snap)
        except OSError as e:
            return _fail(console, f"Error: cannot save snapshot: {e}")
        logger.debug("snapshot saved to %s", path)

    if launch_options.baseline:
        exec_id = execution_identity(adm, environ, target, args)
        baseline = Baseline(
            name=launch_options.baseline,
            execution_id=exec_id.execution_id,
            config_hash=artifact.config_version,
            config_values=dict(artifact.values),
            command=command_string(target, args),
        )
        try:
            BaselineStore(resolve_baseline_dir(environ)).save(baseline)
        except OSError as e:
            return _fail(console, f"Error: cannot save baseline: {e}")

    if launch_options.detect_drift:
        _report_drift(adm, environ, options, launch_options)

    return EXIT_OK


def _report_drift(
    adm: Admission, environ: Mapping[str, str], options: AdmissionOptions, launch_options: LaunchOptions
) -> None:
    """Warn about drift from the named baseline; a missing or unreadable baseline is skipped."""
    store = BaselineStore(resolve_baseline_dir(environ))
    try:
        baseline = store.load(launch_options.detect_drift)
    except (OSError, KeyError, TypeError, ValueError) as e:
        logger.debug("cannot read baseline %r: %s", launch_options.detect_drift, e)
        return
    if baseline is None:
        logger.debug("baseline %r not found, skipping drift detection", launch_options.detect_drift)
        return

    report = drift.detect(baseline, adm.artifact.values, adm.artifact.config_version)
    if not report.has_drift:
        return
    if launch_options.drift_json:
        _err_line(drift.format_json(report))
    elif is_ci_mode(options.ci, environ):
        _err_line(drift.format_ci(report))
    else:
        Console(stderr=True).print(
            drift.format_cli(report), style="yellow", markup=False, emoji=False, highlight=False, soft_wrap=True, end=""
        )


def _err_line(text: str) -> None:
    sys.stderr.write(text if text.endswith("\n") else text + "\n")


def run_exec(
    schema_path: Path,
    environ: Mapping[str, str],
    command: Sequence[str],
    options: AdmissionOptions,
    dry_run: bool = False,
    output_json: bool = False,
    launch_options: LaunchOptions | None = None,
) -> int:
    """Admit, then run `command` with the given environment.

    Returns:
        The admission exit code on rejection, otherwise the command's exit code.
    """
    console = Console(stderr=True)
    if not command and not dry_run:
        console.print("missing command: usage: admit run [OPTIONS] -- COMMAND [ARGS]...", style="bold red", markup=False)
        return EXIT_INVALID

    adm = run_admission(schema_path, environ, options)
    if not adm.admitted:
        return adm.exit_code

    if dry_run:
        target = command[0] if command else ""
        exec_id = execution_identity(adm, environ, target, command[1:])
        exit_code = emit_execution_id(exec_id, options)
        if exit_code:
            return exit_code
        if output_json:
            print_json(
                {
                    "valid": True,
                    "command": target,
                    "args": list(command[1:]),
                    "schemaPath": str(schema_path),
                    "configVersion": adm.artifact.config_version if adm.artifact else None,
                    "executionId": exec_id.short(),
                }
            )
        else:
            console.print(f"Config valid, would execute: {shlex.join(command)}", markup=False, highlight=False, soft_wrap=True)
        return EXIT_OK

    child_environ = dict(environ)
    exit_code = _prepare_launch(adm, child_environ, command, options, launch_options or LaunchOptions(), console)
    if exit_code:
        return exit_code
    return launch(command, child_environ, console)
