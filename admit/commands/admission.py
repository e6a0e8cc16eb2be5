"""
The admission pipeline shared by `check` and `run`.

load schema -> resolve -> validate -> invariants -> contract -> artifact

Each stage reports its own failures and maps them to an exit code. The
evaluators themselves never print or exit.
"""

from __future__ import annotations

import json
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Sequence

from rich.console import Console

from .. import contracts, rules
from ..artifact import ConfigArtifact, generate_artifact, write_artifact
from ..identity import ExecutionIdentity, compute_execution_id
from ..contracts import reporter as contract_reporter
from ..resolver import ResolvedValue, config_values, resolve
from ..rules import reporter as invariant_reporter
from ..schema import Schema, SchemaError, load_schema
from ..validator import ValidationResult, format_ci_annotation, format_error, validate

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_INVALID = 1
EXIT_INVARIANT_VIOLATION = 2
EXIT_SCHEMA_ERROR = 3
EXIT_NOT_FOUND = 4  # snapshot or baseline
EXIT_CONTRACT_VIOLATION = 5

_TRUTHY = {"1", "true", "yes"}


@dataclass(frozen=True)
class AdmissionOptions:
    env_name: str | None = None
    ci: bool = False
    invariants_json: bool = False
    contract_json: bool = False
    artifact_file: Path | None = None
    artifact_stdout: bool = False
    artifact_log: bool = False
    execution_id: bool = False
    execution_id_json: bool = False
    execution_id_file: Path | None = None


@dataclass
class Admission:
    """Everything the pipeline computed, for the command that ran it."""

    schema_path: Path
    exit_code: int = EXIT_OK
    schema: Schema | None = None
    resolved: list[ResolvedValue] = field(default_factory=list)
    validation: ValidationResult | None = None
    invariant_results: list[rules.InvariantResult] = field(default_factory=list)
    contract_result: contracts.EvalResult | None = None
    artifact: ConfigArtifact | None = None

    @property
    def admitted(self) -> bool:
        return self.exit_code == EXIT_OK


def env_bool(environ: Mapping[str, str], name: str) -> bool:
    return environ.get(name, "").strip().lower() in _TRUTHY


def is_ci_mode(flag: bool, environ: Mapping[str, str]) -> bool:
    return flag or env_bool(environ, "ADMIT_CI") or env_bool(environ, "CI")


def _say(console: Console, text: str, style: str, end: str = "\n") -> None:
    # Report text carries literal brackets; never interpret it as markup.
    console.print(text, style=style, markup=False, emoji=False, highlight=False, soft_wrap=True, end=end)


def _err(text: str) -> None:
    # Plain stderr: CI runners parse these lines.
    sys.stderr.write(text)
    if not text.endswith("\n"):
        sys.stderr.write("\n")


def run_admission(schema_path: Path, environ: Mapping[str, str], options: AdmissionOptions) -> Admission:
    console = Console(stderr=True)
    adm = Admission(schema_path=schema_path)
    ci = is_ci_mode(options.ci, environ)

    # Schema
    try:
        adm.schema = load_schema(schema_path)
    except FileNotFoundError:
        _say(console, f"schema file not found: {schema_path}", "bold red")
        adm.exit_code = EXIT_SCHEMA_ERROR
        return adm
    except (SchemaError, OSError) as e:
        _say(console, f"failed to parse schema: {e}", "bold red")
        adm.exit_code = EXIT_SCHEMA_ERROR
        return adm

    # Resolve + validate
    adm.resolved = resolve(adm.schema, environ)
    adm.validation = validate(adm.schema, adm.resolved)
    if not adm.validation.valid:
        if ci:
            for verr in adm.validation.errors:
                _err(format_ci_annotation(verr))
            _err(f"\n❌ Validation failed: {len(adm.validation.errors)} error(s)")
        else:
            for verr in adm.validation.errors:
                _say(console, format_error(verr), "red")
        adm.exit_code = EXIT_INVALID
        return adm

    values = config_values(adm.resolved)
    execution_env = environ.get("ADMIT_ENV", "")

    # Invariants
    if adm.schema.invariants:
        ctx = rules.EvalContext(config_values=values, execution_env=execution_env)
        adm.invariant_results = rules.evaluate_all(adm.schema.invariants, ctx)
        logger.debug("evaluated %d invariant(s)", len(adm.invariant_results))

        if options.invariants_json:
            print(invariant_reporter.format_json(adm.invariant_results))

        if rules.has_violations(adm.invariant_results):
            if not options.invariants_json:
                if ci:
                    _err(invariant_reporter.format_ci(adm.invariant_results))
                else:
                    _say(console, invariant_reporter.format_violations(adm.invariant_results), "red", end="")
            adm.exit_code = EXIT_INVARIANT_VIOLATION
            return adm

    # Contract
    env_name = options.env_name or execution_env
    if env_name and adm.schema.environments:
        contract = adm.schema.environments.get(env_name)
        if contract is None:
            _say(console, f"Error: unknown environment '{env_name}'", "bold red")
            adm.exit_code = EXIT_INVALID
            return adm

        adm.contract_result = contracts.evaluate(contract, values)
        if options.contract_json:
            print(contract_reporter.format_json(adm.contract_result))

        if not adm.contract_result.passed:
            if not options.contract_json:
                if ci:
                    _err(contract_reporter.format_ci(adm.contract_result))
                else:
                    _say(console, contract_reporter.format_cli(adm.contract_result), "red", end="")
            adm.exit_code = EXIT_CONTRACT_VIOLATION
            return adm

    # Artifact
    adm.artifact = generate_artifact(adm.resolved)
    if options.artifact_file is not None:
        try:
            write_artifact(adm.artifact, options.artifact_file)
        except OSError as e:
            _say(console, f"Error: cannot write artifact: {options.artifact_file}: {e}", "bold red")
            adm.exit_code = EXIT_INVALID
            return adm
    if options.artifact_stdout:
        print(adm.artifact.to_json())
    if options.artifact_log:
        _err(f"configVersion: {adm.artifact.config_version}")

    return adm


def execution_identity(
    adm: Admission, environ: Mapping[str, str], command: str = "", args: Sequence[str] = ()
) -> ExecutionIdentity:
    """Execution id of an admitted config; `check` uses an empty command."""
    config_version = adm.artifact.config_version if adm.artifact else ""
    schema_keys = adm.schema.keys if adm.schema else []
    return compute_execution_id(config_version, command, args, environ, schema_keys)


def emit_execution_id(exec_id: ExecutionIdentity, options: AdmissionOptions) -> int:
    """Write and print the execution id as the options ask; EXIT_INVALID if the file cannot be written."""
    if options.execution_id_file is not None:
        try:
            exec_id.write(options.execution_id_file)
        except OSError as e:
            _say(
                Console(stderr=True),
                f"Error: cannot write execution identity: {options.execution_id_file}: {e}",
                "bold red",
            )
            return EXIT_INVALID
    if options.execution_id_json:
        print(exec_id.to_json())
    elif options.execution_id:
        print(exec_id.short())
    return EXIT_OK


def check_report(adm: Admission, execution_id: str | None = None) -> dict:
    """JSON document for `check --json`."""
    validation_errors = adm.validation.errors if adm.validation else []
    report = {
        "valid": adm.admitted,
        "validationErrors": [
            {"key": e.key, "envVar": e.env_var, "message": e.message} for e in validation_errors
        ],
        "invariantResults": [r.to_dict() for r in adm.invariant_results],
        "contract": adm.contract_result.to_dict() if adm.contract_result else None,
        "configVersion": adm.artifact.config_version if adm.artifact else None,
        "schemaPath": str(adm.schema_path),
    }
    if execution_id:
        report["executionId"] = execution_id
    return report


def print_json(data: dict) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))
