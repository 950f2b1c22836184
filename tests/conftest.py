"""
Pytest Configuration and Shared Test Fixtures

This module provides pytest configuration and reusable fixtures for all tests.
All fixtures defined here are automatically available to all test files.
"""

import os
import sys
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add project root to sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from invport.infrastructure.database.query_executor import QueryExecutor  # noqa: E402
from tests.test_fixtures.database_factory import (  # noqa: E402
    FakeClock,
    FakeDatabase,
    FakePool,
    make_settings,
    ok,
    scalar,
)

# ============================================================================
# Settings
# ============================================================================


@pytest.fixture
def settings():
    """Settings with a dummy connection string and fast, single-attempt connects."""
    return make_settings()


# ============================================================================
# Clock
# ============================================================================


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
def fake_db() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture
def pool_factory(fake_db):
    """AsyncMock pool factory that hands out FakePools over ``fake_db``."""
    return AsyncMock(side_effect=lambda connection_string: FakePool(fake_db))


@pytest.fixture
def mock_executor():
    """QueryExecutor double; configure ``execute_query``/``execute_scalar`` per test."""
    executor = MagicMock(spec=QueryExecutor)
    executor.execute_query = AsyncMock(return_value=ok())
    executor.execute_scalar = AsyncMock(return_value=scalar(0))
    executor.circuit_status.return_value = {"isOpen": False, "failures": 0, "nextAttempt": None}
    return executor
