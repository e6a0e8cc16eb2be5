"""Snapshot listing/pruning and replay of a stored execution."""

from __future__ import annotations

import json
from datetime import timedelta
from typing import Mapping

from rich.console import Console

from ..snapshot import SnapshotStore, env_var_to_path, resolve_snapshot_dir, verify
from .admission import EXIT_INVALID, EXIT_NOT_FOUND, EXIT_OK
from .run_cmd import launch


def _error(console: Console, message: str) -> None:
    console.print(message, style="bold red", markup=False, highlight=False, soft_wrap=True)


def run_snapshots(
    environ: Mapping[str, str],
    output_json: bool = False,
    prune_days: int | None = None,
    delete_id: str | None = None,
) -> int:
    console = Console(stderr=True)
    store = SnapshotStore(resolve_snapshot_dir(environ))

    if delete_id:
        try:
            deleted = store.delete(delete_id)
        except OSError as e:
            _error(console, f"Error: cannot delete snapshot: {e}")
            return EXIT_INVALID
        if not deleted:
            _error(console, f"Error: snapshot not found: {delete_id}")
            return EXIT_NOT_FOUND
        print(f"Deleted snapshot: {delete_id}")
        return EXIT_OK

    if prune_days:
        try:
            count = store.prune(timedelta(days=prune_days))
        except OSError as e:
            _error(console, f"Error: cannot prune snapshots: {e}")
            return EXIT_INVALID
        print(f"Pruned {count} snapshot(s) older than {prune_days} days")
        return EXIT_OK

    summaries = store.list()
    if output_json:
        print(json.dumps([s.to_dict() for s in summaries], indent=2))
    elif not summaries:
        print("No snapshots found")
    else:
        for s in summaries:
            print(f"{s.execution_id}  {s.command}  {s.timestamp.isoformat()}")
    return EXIT_OK


def run_replay(
    execution_id: str,
    environ: Mapping[str, str],
    dry_run: bool = False,
    output_json: bool = False,
) -> int:
    """Re-run a snapshot's command with its recorded environment layered over `environ`."""
    console = Console(stderr=True)
    store = SnapshotStore(resolve_snapshot_dir(environ))

    try:
        snap = store.load(execution_id)
    except (OSError, KeyError, TypeError, ValueError) as e:
        _error(console, f"Error: cannot load snapshot: {e}")
        return EXIT_INVALID
    if snap is None:
        _error(console, f"Error: snapshot not found: {execution_id}")
        return EXIT_NOT_FOUND

    result = verify(snap, [env_var_to_path(name) for name in snap.environment])
    if result.id_mismatch:
        console.print("Warning: snapshot may be corrupted (execution ID mismatch)", style="yellow", highlight=False)
    if result.schema_changed:
        console.print(f"Warning: {result.schema_message}", style="yellow", highlight=False)

    if output_json:
        print(snap.to_json())
        return EXIT_OK

    command = [snap.command, *snap.args]
    if dry_run:
        print(f"Would execute: {' '.join(command)}")
        print("With environment:")
        for name, value in snap.environment.items():
            print(f"  {name}={value}")
        return EXIT_OK

    child_environ = dict(environ)
    child_environ.update(snap.environment)
    return launch(command, child_environ, console)
