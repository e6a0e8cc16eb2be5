"""Schema show command implementation."""

from __future__ import annotations

from pathlib import Path

from rich.console import Console

from ..schema import SchemaError, load_schema, schema_to_yaml


def run_show(schema_path: Path) -> int:
    console = Console(stderr=True)
    try:
        schema = load_schema(schema_path)
    except FileNotFoundError:
        console.print(f"schema file not found: {schema_path}", style="bold red", markup=False, highlight=False)
        return 3
    except (SchemaError, OSError) as e:
        console.print(f"failed to parse schema: {e}", style="bold red", markup=False, highlight=False)
        return 3

    print(schema_to_yaml(schema), end="")
    console.print(
        f"{len(schema.config)} key(s), {len(schema.invariants)} invariant(s), "
        f"{len(schema.environments)} environment(s)",
        style="dim",
        highlight=False,
    )
    return 0
