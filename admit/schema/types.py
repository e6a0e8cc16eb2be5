from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from ..contracts.schema import Contract
from ..rules.expr import Invariant

ConfigType = Literal["string", "enum"]


@dataclass(frozen=True)
class ConfigKey:
    path: str  # e.g. "db.url"
    type: ConfigType = "string"
    required: bool = False
    values: tuple[str, ...] = ()  # enum only


@dataclass(frozen=True)
class Schema:
    """Read-only after load; evaluators may share one instance."""

    config: dict[str, ConfigKey] = field(default_factory=dict)
    invariants: list[Invariant] = field(default_factory=list)
    environments: dict[str, Contract] = field(default_factory=dict)

    @property
    def keys(self) -> list[str]:
        return list(self.config)
