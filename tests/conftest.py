"""
Shared pytest fixtures for action-runtime tests.

This module provides:
- src/ on the import path
- Settings cache reset between tests
- Sample resource / action option mappings
- An in-memory ResourceLookup

Usage:
    Fixtures are auto-discovered by pytest; request them as arguments.
"""

import sys
from pathlib import Path
from typing import Any

import pytest

# Ensure actionruntime package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from actionruntime.core.settings import get_settings


# =============================================================================
# Settings isolation
# =============================================================================


@pytest.fixture(autouse=True)
def _reset_settings(monkeypatch: pytest.MonkeyPatch):
    """Fresh settings per test; no developer .env leaks in."""
    monkeypatch.delenv("ACTIONRUNTIME_QUERY_TIMEOUT_SECONDS", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# =============================================================================
# Sample options
# =============================================================================


@pytest.fixture
def pg_resource_options() -> dict[str, Any]:
    return {
        "host": "db.internal",
        "port": "5432",
        "databaseName": "app",
        "databaseUsername": "builder",
        "databasePassword": "s3cret",
        "ssl": {"ssl": False},
    }


@pytest.fixture
def mysql_resource_options() -> dict[str, Any]:
    return {
        "host": "mysql.internal",
        "port": 3306,
        "databaseName": "shop",
        "databaseUsername": "builder",
        "databasePassword": "s3cret",
    }


@pytest.fixture
def rest_resource_options() -> dict[str, Any]:
    return {
        "baseURL": "https://api.example.com",
        "urlParams": [{"key": "apiVersion", "value": "2"}],
        "headers": [{"key": "X-Team", "value": "builders"}],
        "cookies": [],
        "authentication": "bearer",
        "authContent": {"token": "tok-123"},
    }


class InMemoryResources:
    """ResourceLookup backed by a dict."""

    def __init__(self, resources: dict[str, dict[str, Any]]):
        self.resources = resources
        self.calls: list[str] = []

    async def get_resource_options(self, resource_id: str | int) -> dict[str, Any]:
        self.calls.append(str(resource_id))
        return self.resources[str(resource_id)]


@pytest.fixture
def resources(pg_resource_options, rest_resource_options) -> InMemoryResources:
    return InMemoryResources({"pg-1": pg_resource_options, "rest-1": rest_resource_options})


@pytest.fixture
def make_resources():
    """Factory for ad-hoc ResourceLookup stores."""
    return InMemoryResources
