"""
Test Fixtures Package

Shared test utilities and helpers for consistent testing across all modules.
"""

from .database_factory import (
    FakeClock,
    FakeDatabase,
    FakePool,
    ResultSet,
    failed,
    make_settings,
    ok,
    scalar,
)

__all__ = [
    "FakeClock",
    "FakeDatabase",
    "FakePool",
    "ResultSet",
    "failed",
    "make_settings",
    "ok",
    "scalar",
]
