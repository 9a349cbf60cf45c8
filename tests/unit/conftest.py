"""
Pytest configuration and fixtures for unit tests.

Unit tests are fast, isolated tests that don't require external dependencies.
"""

from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock, Mock

import pytest

from services.auth.token_service import TokenService
from services.recently_viewed.storage import (
    KeyValueStorage,
    PersistenceReadError,
    PersistenceWriteError,
)

ACCESS_SECRET = "unit-test-access-secret-0123456789abcdef"
REFRESH_SECRET = "unit-test-refresh-secret-0123456789abcdef"


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class MemoryStorage(KeyValueStorage):
    """Dict-backed KeyValueStorage with switchable failures."""

    def __init__(self):
        self.values: dict[str, str] = {}
        self.fail_reads = False
        self.fail_writes = False
        self.set_calls = 0

    def get(self, key):
        if self.fail_reads:
            raise PersistenceReadError("storage unavailable")
        return self.values.get(key)

    def set(self, key, value):
        self.set_calls += 1
        if self.fail_writes:
            raise PersistenceWriteError("quota exceeded")
        self.values[key] = value

    def remove(self, key):
        if self.fail_writes:
            raise PersistenceWriteError("quota exceeded")
        self.values.pop(key, None)


@pytest.fixture
def clock():
    """Clock frozen at a fixed instant."""
    return FrozenClock(datetime(2024, 3, 1, 12, 0, 0, tzinfo=UTC))


@pytest.fixture
def memory_storage():
    """In-memory key-value storage."""
    return MemoryStorage()


@pytest.fixture
def mock_cursor():
    """Mock database cursor."""
    cursor = MagicMock()
    cursor.description = []
    cursor.fetchone.return_value = None
    cursor.fetchall.return_value = []
    cursor.rowcount = 0
    return cursor


@pytest.fixture
def mock_database(mock_cursor):
    """Mock database whose get_cursor() yields mock_cursor."""
    db = MagicMock()
    db.get_cursor.return_value.__enter__ = Mock(return_value=mock_cursor)
    db.get_cursor.return_value.__exit__ = Mock(return_value=False)
    return db


@pytest.fixture
def token_service(clock):
    """TokenService with distinct access/refresh secrets and a frozen clock."""
    return TokenService(access_secret=ACCESS_SECRET, refresh_secret=REFRESH_SECRET, clock=clock)


@pytest.fixture
def access_secret():
    """Secret the token_service fixture signs access tokens with."""
    return ACCESS_SECRET
