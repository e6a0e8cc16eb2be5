from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any

import yaml

from ..contracts.schema import Contract, ContractRule
from ..rules import Invariant, RuleSyntaxError, UndefinedKeyError, parse_rule
from .types import ConfigKey, Schema

logger = logging.getLogger(__name__)

CONFIG_TYPES = ("string", "enum")
_INVARIANT_NAME_RE = re.compile(r"^[A-Za-z0-9_-]+$")


class SchemaError(ValueError):
    """The schema file is structurally invalid."""


def _coerce_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _coerce_str(value: Any) -> str:
    # YAML turns bare true/false into bools; keep the spelling users wrote.
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _rule_values(raw: Any, *, kind: str, key: str) -> tuple[str, ...]:
    """A rule value is a single scalar or a list of scalars."""
    if isinstance(raw, list):
        if any(isinstance(v, (dict, list)) for v in raw):
            raise SchemaError(f"{kind} rule for '{key}' must be a string or list of strings")
        values = tuple(_coerce_str(v) for v in raw)
    elif raw is None:
        values = ()
    elif isinstance(raw, dict):
        raise SchemaError(f"{kind} rule for '{key}' must be a string or list of strings")
    else:
        values = (_coerce_str(raw),)

    if not values:
        raise SchemaError(f"{kind} rule for '{key}' has no values")
    return values


def _parse_config(data: dict[str, Any]) -> dict[str, ConfigKey]:
    config: dict[str, ConfigKey] = {}
    for path, raw in _coerce_dict(data.get("config")).items():
        entry = _coerce_dict(raw)
        config_type = str(entry.get("type", "")).strip()
        if config_type not in CONFIG_TYPES:
            raise SchemaError(f"unknown type '{config_type}' for config '{path}'")

        raw_values = entry.get("values")
        if raw_values is None:
            values: tuple[str, ...] = ()
        elif isinstance(raw_values, list) and not any(isinstance(v, (dict, list)) for v in raw_values):
            values = tuple(_coerce_str(v) for v in raw_values)
        else:
            raise SchemaError(f"'values' for config '{path}' must be a list of strings")
        if config_type == "enum" and not values:
            raise SchemaError(f"enum type requires 'values' for config '{path}'")

        required = entry.get("required", False)
        if not isinstance(required, bool):
            raise SchemaError(f"'required' for config '{path}' must be true or false")

        config[str(path)] = ConfigKey(
            path=str(path),
            type=config_type,  # type: ignore[arg-type]
            required=required,
            values=values,
        )
    return config


def _parse_invariants(data: dict[str, Any], config_keys: list[str]) -> list[Invariant]:
    raw_list = data.get("invariants") or []
    if not isinstance(raw_list, list):
        raise SchemaError("'invariants' must be a list")

    invariants: list[Invariant] = []
    seen: set[str] = set()
    for i, raw in enumerate(raw_list):
        entry = _coerce_dict(raw)
        name = entry.get("name")
        name = "" if name is None else str(name)
        if not name:
            raise SchemaError(f"invariant at index {i}: missing required field 'name'")
        if not _INVARIANT_NAME_RE.fullmatch(name):
            raise SchemaError(f"invariant name '{name}' contains invalid characters")
        if name in seen:
            raise SchemaError(f"duplicate invariant name: '{name}'")
        seen.add(name)

        rule = entry.get("rule")
        if not isinstance(rule, str) or rule == "":
            raise SchemaError(f"invariant '{name}': missing required field 'rule'")

        try:
            expr = parse_rule(rule, config_keys)
        except (RuleSyntaxError, UndefinedKeyError) as e:
            raise SchemaError(f"invariant '{name}': invalid rule syntax: {e}") from e

        invariants.append(Invariant(name=name, rule=rule, expr=expr))
    return invariants


def _parse_contract(name: str, raw: Any) -> Contract:
    entry = _coerce_dict(raw)
    allow = {
        str(key): ContractRule(values=_rule_values(value, kind="allow", key=key), is_glob=False)
        for key, value in _coerce_dict(entry.get("allow")).items()
    }

    deny: dict[str, ContractRule] = {}
    for key, value in _coerce_dict(entry.get("deny")).items():
        values = _rule_values(value, kind="deny", key=key)
        deny[str(key)] = ContractRule(values=values, is_glob=any("*" in v for v in values))

    return Contract(name=name, allow=allow, deny=deny)


def parse_schema(text: str) -> Schema:
    """
    Parse admit.yaml content.

    Invariant rules are parsed here, once, against the declared config keys,
    so a bad rule fails the load instead of the check.
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise SchemaError(f"invalid YAML: {e}") from e
    data = _coerce_dict(data)

    config = _parse_config(data)
    invariants = _parse_invariants(data, list(config))

    environments: dict[str, Contract] = {}
    for env_name, raw in _coerce_dict(data.get("environments")).items():
        try:
            environments[str(env_name)] = _parse_contract(str(env_name), raw)
        except SchemaError as e:
            raise SchemaError(f"environment '{env_name}': {e}") from e

    logger.debug(
        "schema parsed: %d config key(s), %d invariant(s), %d environment(s)",
        len(config),
        len(invariants),
        len(environments),
    )
    return Schema(config=config, invariants=invariants, environments=environments)


def load_schema(path: Path) -> Schema:
    """Load a schema file. A missing file raises FileNotFoundError unchanged."""
    logger.debug("loading schema from %s", path)
    return parse_schema(path.read_text(encoding="utf-8"))


def _rule_to_yaml(rule: ContractRule) -> str | list[str]:
    return rule.values[0] if len(rule.values) == 1 else list(rule.values)


def schema_to_yaml(schema: Schema) -> str:
    """Serialize back to admit.yaml form; single-valued rules become scalars."""
    config: dict[str, Any] = {}
    for path, key in schema.config.items():
        entry: dict[str, Any] = {"type": key.type, "required": key.required}
        if key.values:
            entry["values"] = list(key.values)
        config[path] = entry

    data: dict[str, Any] = {"config": config}
    if schema.invariants:
        data["invariants"] = [{"name": inv.name, "rule": inv.rule} for inv in schema.invariants]
    if schema.environments:
        envs: dict[str, Any] = {}
        for name, contract in schema.environments.items():
            env: dict[str, Any] = {}
            if contract.allow:
                env["allow"] = {k: _rule_to_yaml(r) for k, r in contract.allow.items()}
            if contract.deny:
                env["deny"] = {k: _rule_to_yaml(r) for k, r in contract.deny.items()}
            envs[name] = env
        data["environments"] = envs

    return yaml.safe_dump(data, sort_keys=False, allow_unicode=True)
