"""
Shared fixtures.

Importing ``app.models`` registers every mapped class so ORM objects can be
built in memory without a database.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

import app.models  # noqa: F401
from tests.factories import NOW


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def mock_db():
    """Create a mock database session."""
    db = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.refresh = AsyncMock()
    db.flush = AsyncMock()
    db.execute = AsyncMock()
    db.add = MagicMock()

    # Savepoints used by best-effort notifications
    nested = MagicMock()
    nested.__aenter__ = AsyncMock(return_value=nested)
    nested.__aexit__ = AsyncMock(return_value=False)
    db.begin_nested = MagicMock(return_value=nested)
    return db
