"""Baseline list/show/delete commands."""

from __future__ import annotations

import json
from typing import Mapping

from rich.console import Console
from rich.table import Table
from rich.text import Text

from ..baseline import BaselineStore, resolve_baseline_dir
from .admission import EXIT_INVALID, EXIT_NOT_FOUND, EXIT_OK


def _error(console: Console, message: str) -> None:
    console.print(message, style="bold red", markup=False, highlight=False, soft_wrap=True)


def run_baseline_list(environ: Mapping[str, str], output_json: bool = False) -> int:
    summaries = BaselineStore(resolve_baseline_dir(environ)).list()
    if output_json:
        print(json.dumps([s.to_dict() for s in summaries], indent=2, ensure_ascii=False))
        return EXIT_OK
    if not summaries:
        print("No baselines found")
        return EXIT_OK

    table = Table(show_header=True, box=None)
    table.add_column("Name", style="bold")
    table.add_column("Config hash")
    table.add_column("Command")
    table.add_column("Timestamp", style="dim")
    for s in summaries:
        table.add_row(Text(s.name), s.config_hash[:20] + "...", Text(s.command), s.timestamp.isoformat())
    Console().print(table)
    return EXIT_OK


def run_baseline_show(name: str, environ: Mapping[str, str], output_json: bool = False) -> int:
    console = Console(stderr=True)
    try:
        baseline = BaselineStore(resolve_baseline_dir(environ)).load(name)
    except (OSError, KeyError, TypeError, ValueError) as e:
        _error(console, f"Error: cannot load baseline: {e}")
        return EXIT_INVALID
    if baseline is None:
        _error(console, f"Error: baseline not found: {name}")
        return EXIT_NOT_FOUND

    if output_json:
        print(baseline.to_json())
        return EXIT_OK

    print(f"Name:        {baseline.name}")
    print(f"ConfigHash:  {baseline.config_hash}")
    print(f"ExecutionID: {baseline.execution_id}")
    print(f"Command:     {baseline.command}")
    print(f"Timestamp:   {baseline.timestamp.isoformat()}")
    print("Config Values:")
    for key, value in sorted(baseline.config_values.items()):
        print(f"  {key}: {value}")
    return EXIT_OK


def run_baseline_delete(name: str, environ: Mapping[str, str]) -> int:
    console = Console(stderr=True)
    try:
        deleted = BaselineStore(resolve_baseline_dir(environ)).delete(name)
    except OSError as e:
        _error(console, f"Error: cannot delete baseline: {e}")
        return EXIT_INVALID
    if not deleted:
        _error(console, f"Error: baseline not found: {name}")
        return EXIT_NOT_FOUND
    print(f"Deleted baseline: {name}")
    return EXIT_OK
