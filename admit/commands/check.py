"""Check command implementation: validate and evaluate, never execute."""

from __future__ import annotations

from pathlib import Path
from typing import Mapping

from rich.console import Console

from .admission import (
    AdmissionOptions,
    check_report,
    emit_execution_id,
    execution_identity,
    print_json,
    run_admission,
)


def run_check(
    schema_path: Path,
    environ: Mapping[str, str],
    options: AdmissionOptions,
    output_json: bool = False,
) -> int:
    """Run the admission pipeline and report.

    Returns:
        Exit code (0 = admitted, non-zero = see admission.EXIT_*)
    """
    adm = run_admission(schema_path, environ, options)
    if not adm.admitted:
        if output_json:
            print_json(check_report(adm))
        return adm.exit_code

    exec_id = execution_identity(adm, environ)
    exit_code = emit_execution_id(exec_id, options)
    if exit_code:
        return exit_code

    if output_json:
        print_json(check_report(adm, exec_id.short()))
    else:
        console = Console(stderr=True)
        console.print("✓ Config valid", style="bold green", highlight=False)
        console.print(f"configVersion: {adm.artifact.config_version}", style="dim", highlight=False, soft_wrap=True)

    return adm.exit_code
