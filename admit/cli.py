"""CLI entrypoint for admit."""

import logging
import os
import sys
from pathlib import Path

import click

from . import __version__

_FILE = click.Path(dir_okay=False, path_type=Path)


def _admission_options(f):
    """Options shared by `check` and `run`."""
    decorators = [
        click.option(
            "--env",
            "env_name",
            type=str,
            default=None,
            metavar="NAME",
            help="Environment contract to enforce (defaults to ADMIT_ENV)",
        ),
        click.option(
            "--ci",
            is_flag=True,
            help="Emit GitHub Actions annotations (also enabled by ADMIT_CI or CI)",
        ),
        click.option(
            "--invariants-json",
            is_flag=True,
            help="Print invariant results as JSON to stdout",
        ),
        click.option(
            "--contract-json",
            is_flag=True,
            help="Print contract results as JSON to stdout",
        ),
        click.option(
            "--artifact-file",
            type=_FILE,
            default=None,
            help="Write the config artifact to this file",
        ),
        click.option(
            "--artifact-stdout",
            is_flag=True,
            help="Print the config artifact as JSON to stdout",
        ),
        click.option(
            "--artifact-log",
            is_flag=True,
            help="Log the configVersion to stderr",
        ),
        click.option(
            "--execution-id",
            is_flag=True,
            help="Print the execution id to stdout",
        ),
        click.option(
            "--execution-id-json",
            is_flag=True,
            help="Print the full execution identity as JSON to stdout",
        ),
        click.option(
            "--execution-id-file",
            type=_FILE,
            default=None,
            help="Write the execution identity to this file",
        ),
    ]
    for decorator in reversed(decorators):
        f = decorator(f)
    return f


def _build_options(**kwargs):
    from .commands.admission import AdmissionOptions

    return AdmissionOptions(**kwargs)


@click.group()
@click.version_option(__version__, prog_name="admit")
@click.option(
    "--schema",
    "-s",
    type=_FILE,
    default=Path("admit.yaml"),
    envvar="ADMIT_SCHEMA",
    show_default=True,
    help="Path to the schema file (or set ADMIT_SCHEMA)",
)
@click.option("--verbose", is_flag=True, help="Log debug output to stderr")
@click.pass_context
def cli(ctx: click.Context, schema: Path, verbose: bool) -> None:
    """admit - Configuration governance at the process boundary.

    Resolves the keys declared in admit.yaml from the environment, checks
    types, invariants and the environment contract, and only then lets a
    command run.
    """
    ctx.ensure_object(dict)
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    ctx.obj["schema"] = schema


@cli.command()
@_admission_options
@click.option(
    "--json",
    "output_json",
    is_flag=True,
    help="Output the check summary as JSON",
)
@click.pass_context
def check(ctx: click.Context, output_json: bool, **admission) -> None:
    """Validate config, invariants and contract without running anything.

    Exit codes: 0 valid, 1 invalid config, 2 invariant violation,
    3 schema error, 5 contract violation.

    Examples:

        admit check

        ADMIT_ENV=prod admit check --ci

        admit check --execution-id
    """
    from .commands.check import run_check

    exit_code = run_check(ctx.obj["schema"], dict(os.environ), _build_options(**admission), output_json=output_json)
    sys.exit(exit_code)


@cli.command(context_settings={"ignore_unknown_options": True, "allow_interspersed_args": False})
@_admission_options
@click.option(
    "--dry-run",
    is_flag=True,
    help="Admit and show what would run, without executing",
)
@click.option(
    "--json",
    "output_json",
    is_flag=True,
    help="With --dry-run, output the plan as JSON",
)
@click.option("--identity", is_flag=True, help="Print the code identity as JSON to stdout")
@click.option("--identity-file", type=_FILE, default=None, help="Write the code identity to this file")
@click.option("--identity-short", is_flag=True, help="Print only the code identity's id")
@click.option(
    "--execution-id-env",
    metavar="VAR",
    default=None,
    help="Pass the execution id to the command in this variable",
)
@click.option("--inject-file", type=_FILE, default=None, help="Write the config artifact here for the command")
@click.option(
    "--inject-env",
    metavar="VAR",
    default=None,
    help="Pass the config artifact JSON to the command in this variable",
)
@click.option("--snapshot", is_flag=True, help="Store a replayable snapshot of this execution")
@click.option(
    "--baseline",
    is_flag=False,
    flag_value="default",
    default=None,
    metavar="[NAME]",
    help="Store the admitted config as a baseline (default name: default)",
)
@click.option(
    "--detect-drift",
    is_flag=False,
    flag_value="default",
    default=None,
    metavar="[NAME]",
    help="Warn about config drift since a baseline (default name: default)",
)
@click.option("--drift-json", is_flag=True, help="Report drift as JSON")
@click.argument("command", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
def run(
    ctx: click.Context,
    dry_run: bool,
    output_json: bool,
    identity: bool,
    identity_file: Path | None,
    identity_short: bool,
    execution_id_env: str | None,
    inject_file: Path | None,
    inject_env: str | None,
    snapshot: bool,
    baseline: str | None,
    detect_drift: str | None,
    drift_json: bool,
    command: tuple[str, ...],
    **admission,
) -> None:
    """Admit the current config, then execute COMMAND.

    Examples:

        admit run -- ./server --port 8080

        admit run --env prod --dry-run -- python manage.py migrate

        admit run --inject-env ADMIT_CONFIG --snapshot -- ./worker
    """
    from .commands.run_cmd import LaunchOptions, run_exec

    if output_json and not dry_run:
        raise click.UsageError("--json requires --dry-run")

    launch_options = LaunchOptions(
        identity=identity,
        identity_file=identity_file,
        identity_short=identity_short,
        execution_id_env=execution_id_env,
        inject_file=inject_file,
        inject_env=inject_env,
        snapshot=snapshot,
        baseline=baseline,
        detect_drift=detect_drift,
        drift_json=drift_json,
    )
    exit_code = run_exec(
        ctx.obj["schema"],
        dict(os.environ),
        command,
        _build_options(**admission),
        dry_run=dry_run,
        output_json=output_json,
        launch_options=launch_options,
    )
    sys.exit(exit_code)


@cli.command()
@click.argument("rule")
@click.option(
    "--validate-keys",
    is_flag=True,
    help="Check referenced config keys against the schema",
)
@click.option(
    "--json",
    "output_json",
    is_flag=True,
    help="Output as JSON",
)
@click.pass_context
def explain(ctx: click.Context, rule: str, validate_keys: bool, output_json: bool) -> None:
    """Parse RULE and print its canonical form.

    Examples:

        admit explain 'execution.env == "prod" => db.env == "prod"'

        admit explain --validate-keys 'payments.mode != "test"'
    """
    from .commands.explain import run_explain

    schema_path = ctx.obj["schema"] if validate_keys else None
    exit_code = run_explain(rule, schema_path=schema_path, output_json=output_json)
    sys.exit(exit_code)


@cli.group()
def schema() -> None:
    """Schema inspection commands."""
    pass


@schema.command("show")
@click.pass_context
def schema_show(ctx: click.Context) -> None:
    """Load the schema and print it in normalized form.

    Rules are re-validated on load, so this doubles as a schema lint.
    """
    from .commands.schema_cmd import run_show

    exit_code = run_show(ctx.obj["schema"])
    sys.exit(exit_code)


@cli.command()
@click.argument("execution_id")
@click.option("--dry-run", is_flag=True, help="Show the command and environment without executing")
@click.option("--json", "output_json", is_flag=True, help="Print the snapshot as JSON")
def replay(execution_id: str, dry_run: bool, output_json: bool) -> None:
    """Re-execute a stored snapshot (see `admit run --snapshot`).

    Snapshots live in ADMIT_SNAPSHOT_DIR, default ~/.admit/snapshots.
    """
    from .commands.replay import run_replay

    sys.exit(run_replay(execution_id, dict(os.environ), dry_run=dry_run, output_json=output_json))


@cli.command()
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.option("--prune", "prune_days", type=click.IntRange(min=1), default=None, metavar="DAYS",
              help="Delete snapshots older than DAYS")
@click.option("--delete", "delete_id", default=None, metavar="EXECUTION_ID", help="Delete one snapshot")
def snapshots(output_json: bool, prune_days: int | None, delete_id: str | None) -> None:
    """List, prune or delete stored snapshots."""
    from .commands.replay import run_snapshots

    sys.exit(run_snapshots(dict(os.environ), output_json=output_json, prune_days=prune_days, delete_id=delete_id))


@cli.group()
def baseline() -> None:
    """Baseline management (see `admit run --baseline`).

    Baselines live in ADMIT_BASELINE_DIR, default ~/.admit/baselines.
    """
    pass


@baseline.command("list")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def baseline_list(output_json: bool) -> None:
    """List stored baselines."""
    from .commands.baseline_cmd import run_baseline_list

    sys.exit(run_baseline_list(dict(os.environ), output_json=output_json))


@baseline.command("show")
@click.argument("name")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def baseline_show(name: str, output_json: bool) -> None:
    """Show one baseline."""
    from .commands.baseline_cmd import run_baseline_show

    sys.exit(run_baseline_show(name, dict(os.environ), output_json=output_json))


@baseline.command("delete")
@click.argument("name")
def baseline_delete(name: str) -> None:
    """Delete one baseline."""
    from .commands.baseline_cmd import run_baseline_delete

    sys.exit(run_baseline_delete(name, dict(os.environ)))


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
