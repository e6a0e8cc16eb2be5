"""Type validation of resolved values against their declarations."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from .resolver import ResolvedValue
from .schema import Schema


@dataclass(frozen=True)
class ValidationError:
    key: str
    env_var: str
    message: str
    value: str = ""
    allowed: tuple[str, ...] = ()


@dataclass(frozen=True)
class ValidationResult:
    errors: list[ValidationError] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors


def validate(schema: Schema, resolved: Iterable[ResolvedValue]) -> ValidationResult:
    """Check every resolved value; all errors are collected."""
    errors: list[ValidationError] = []
    for rv in resolved:
        key = schema.config.get(rv.key)
        if key is None:
            continue

        if not rv.present:
            if key.required:
                errors.append(ValidationError(key=rv.key, env_var=rv.env_var, message="required but not set"))
            continue

        if key.type == "enum" and rv.value not in key.values:
            errors.append(
                ValidationError(
                    key=rv.key,
                    env_var=rv.env_var,
                    message="invalid enum value",
                    value=rv.value,
                    allowed=key.values,
                )
            )

    return ValidationResult(errors=errors)


def format_error(err: ValidationError) -> str:
    if err.allowed:
        return f"{err.key}: '{err.value}' is not valid, must be one of: {', '.join(err.allowed)}"
    if not err.value:
        return f"{err.key}: required but {err.env_var} is not set"
    return f"{err.key}: {err.message}"


def format_ci_annotation(err: ValidationError) -> str:
    return f"::error file=admit.yaml::{format_error(err)}"
