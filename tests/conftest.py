"""
Shared pytest fixtures and configuration for cashflow-core tests.

This module provides:
- Store fixtures (in-memory SQLite) for engine tests
- A temporary migrations directory with a ``write`` helper
- Logging context / settings cache cleanup for test isolation

Usage:
    Fixtures are auto-discovered by pytest. Simply use them as function
    arguments (pytest injects them automatically).

    def test_something(store, migrations_dir):
        migrations_dir.write("001_create_users.sql", "CREATE TABLE users (id INT);")
        ...
"""

import sys
from pathlib import Path
from typing import Generator

import pytest
import structlog
from structlog.testing import LogCapture

# Ensure cashflow package and tests._support are importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
sys.path.insert(0, str(Path(__file__).parent.parent))

from cashflow.core.logging import clear_context
from cashflow.core.settings import get_settings
from cashflow.core.stores.sqlite_store import SqliteStore
from tests._support.stores import CountingStore, MigrationsDir


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on their location."""
    for item in items:
        test_path = Path(item.fspath).relative_to(Path(__file__).parent)

        if "integration" in str(test_path):
            item.add_marker(pytest.mark.integration)

        # Mark all tests without explicit markers as unit tests
        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration", "slow"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Isolation Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def clean_state() -> Generator[None, None, None]:
    """Clear bound log context and cached settings around each test."""
    clear_context()
    get_settings.cache_clear()
    yield
    clear_context()
    get_settings.cache_clear()


# =============================================================================
# Store / Migration Fixtures
# =============================================================================


@pytest.fixture
def log_output() -> Generator[LogCapture, None, None]:
    """Capture structlog events, including bound context."""
    capture = LogCapture()
    structlog.reset_defaults()
    structlog.configure(processors=[structlog.contextvars.merge_contextvars, capture])
    yield capture
    structlog.reset_defaults()


@pytest.fixture
def migrations_dir(tmp_path: Path) -> MigrationsDir:
    """Empty migrations directory under tmp_path."""
    d = tmp_path / "migrations"
    d.mkdir()
    return MigrationsDir(d)


@pytest.fixture
def store() -> Generator[SqliteStore, None, None]:
    """In-memory SQLite store."""
    s = SqliteStore(":memory:")
    yield s
    s.close()


@pytest.fixture
def counting_store(store: SqliteStore) -> CountingStore:
    """In-memory SQLite store that records every migration body executed."""
    return CountingStore(store)
