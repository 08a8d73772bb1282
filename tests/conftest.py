"""
Shared pytest fixtures for hydrator tests.

This module provides:
- Registry and settings cleanup fixtures for test isolation
- Logging reset so one test's structlog configuration never leaks
- A private ``ResolverRegistry`` and a ``Hydrator`` bound to it

Usage:
    async def test_something(hydrator, registry):
        registry.register(Customer, find_customer)
        await hydrator.hydrate(order)
"""

import logging
from collections.abc import Generator

import pytest
import structlog

from hydrator.core.records import RecordSchema
from hydrator.core.settings import get_settings
from hydrator.execution.engine import Hydrator
from hydrator.execution.registry import ResolverRegistry, reset_default_registry


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Mark all tests without explicit markers as unit tests."""
    for item in items:
        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "slow"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Cleanup Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def clean_default_registry() -> Generator[None, None, None]:
    """Give every test a fresh process-wide resolver registry."""
    reset_default_registry()
    yield
    reset_default_registry()


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Drop cached settings and any HYDRATOR_* variables from the environment."""
    import os

    for key in list(os.environ):
        if key.startswith("HYDRATOR_"):
            monkeypatch.delenv(key)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def clean_logging() -> Generator[None, None, None]:
    """Undo any ``configure_logging`` call made by the test (e.g. through the CLI)."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    structlog.reset_defaults()
    root.handlers[:] = handlers
    root.setLevel(level)
    logging.getLogger("hydrator").setLevel(logging.NOTSET)


# =============================================================================
# Engine Fixtures
# =============================================================================


@pytest.fixture
def registry() -> ResolverRegistry:
    return ResolverRegistry()


@pytest.fixture
def hydrator(registry: ResolverRegistry) -> Hydrator:
    return Hydrator(registry=registry)


@pytest.fixture
def schema_of():
    """Build the default-keyword schema of a record type."""

    def _schema(record_type: type, keyword: str = "hydrate") -> RecordSchema:
        return RecordSchema.for_type(record_type, keyword)

    return _schema
