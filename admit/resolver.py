"""Resolve declared config keys from environment variables."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Mapping

from .schema import Schema

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedValue:
    key: str  # config path, e.g. "db.url"
    env_var: str  # e.g. "DB_URL"
    value: str = ""
    present: bool = False  # set in the environment, possibly empty


def path_to_env_var(path: str) -> str:
    """"db.url" -> "DB_URL"."""
    return path.replace(".", "_").upper()


def resolve(schema: Schema, environ: Mapping[str, str]) -> list[ResolvedValue]:
    """One ResolvedValue per declared key, in declaration order."""
    results = []
    for path in schema.config:
        env_var = path_to_env_var(path)
        present = env_var in environ
        results.append(
            ResolvedValue(
                key=path,
                env_var=env_var,
                value=environ.get(env_var, ""),
                present=present,
            )
        )
    logger.debug(
        "resolved %d/%d config key(s) from environment",
        sum(1 for r in results if r.present),
        len(results),
    )
    return results


def config_values(resolved: Iterable[ResolvedValue]) -> dict[str, str]:
    """path -> value for the keys that are set; the evaluators' input."""
    return {r.key: r.value for r in resolved if r.present}
