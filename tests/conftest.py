"""Pytest configuration and fixtures."""

from pathlib import Path

import pytest

from admit.schema import Schema, load_schema


@pytest.fixture
def fixture_schema_path() -> Path:
    """Path to the fixture schema."""
    return Path(__file__).parent / "fixtures" / "admit.yaml"


@pytest.fixture
def fixture_schema(fixture_schema_path: Path) -> Schema:
    """Load the fixture schema."""
    return load_schema(fixture_schema_path)


@pytest.fixture
def prod_environ() -> dict[str, str]:
    """An environment that satisfies the fixture schema in prod."""
    return {
        "ADMIT_ENV": "prod",
        "DB_URL": "postgres://db.internal:5432/app",
        "DB_ENV": "prod",
        "PAYMENTS_MODE": "live",
    }
