"""Schema declarations (admit.yaml) and their loader."""

from .load import SchemaError, load_schema, parse_schema, schema_to_yaml
from .types import ConfigKey, ConfigType, Schema

__all__ = [
    "ConfigKey",
    "ConfigType",
    "Schema",
    "SchemaError",
    "load_schema",
    "parse_schema",
    "schema_to_yaml",
]
