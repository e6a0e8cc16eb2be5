"""Explain command: parse one rule and show its canonical form and references."""

from __future__ import annotations

import json
from pathlib import Path

from rich.console import Console
from rich.table import Table
from rich.text import Text

from ..rules import RuleSyntaxError, UndefinedKeyError, collect_config_refs, format_rule, parse_rule
from ..schema import SchemaError, load_schema


def run_explain(rule: str, schema_path: Path | None = None, output_json: bool = False) -> int:
    console = Console(stderr=True)

    known_keys = None
    if schema_path is not None:
        try:
            known_keys = load_schema(schema_path).keys
        except (OSError, SchemaError) as e:
            console.print(f"failed to load schema: {e}", style="bold red", markup=False, highlight=False)
            return 3

    try:
        expr = parse_rule(rule, known_keys)
    except (RuleSyntaxError, UndefinedKeyError) as e:
        console.print(f"invalid rule: {e}", style="bold red", markup=False, highlight=False)
        return 1

    canonical = format_rule(expr)
    refs = collect_config_refs(expr)

    if output_json:
        print(json.dumps({"rule": rule, "canonical": canonical, "kind": type(expr).__name__, "refs": refs}, indent=2))
        return 0

    out = Console()
    table = Table(show_header=False, box=None)
    table.add_column(style="bold")
    table.add_column()
    table.add_row("Canonical", Text(canonical))
    table.add_row("Kind", type(expr).__name__)
    table.add_row("Config keys", Text(", ".join(refs) if refs else "(none)"))
    out.print(table)
    return 0
