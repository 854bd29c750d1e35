"""Pytest configuration and fixtures for core package tests."""

from datetime import datetime, timezone

import pytest
import pytest_asyncio

from humidor_core.db.connection import DatabaseConnection
from humidor_core.subscriptions import (
    EntitlementService,
    InMemoryDocumentBackend,
    SqlDocumentBackend,
    SubscriptionStore,
)

APP_ID = "humidor-hub-test"
FIXED_NOW = datetime(2025, 8, 14, 12, 0, tzinfo=timezone.utc)


# =============================================================================
# Clock
# =============================================================================


class FakeClock:
    """Settable clock for period and renewal calculations."""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def fixed_now():
    return FIXED_NOW


@pytest.fixture
def clock():
    return FakeClock()


# =============================================================================
# Store and Service Fixtures
# =============================================================================


@pytest.fixture
def app_id():
    return APP_ID


@pytest.fixture
def memory_backend():
    return InMemoryDocumentBackend()


@pytest.fixture
def store(memory_backend, clock, app_id):
    return SubscriptionStore(memory_backend, app_id=app_id, load_timeout=1.0, clock=clock)


@pytest.fixture
def service(store, clock):
    return EntitlementService(store, clock=clock)


@pytest_asyncio.fixture
async def sqlite_db():
    """In-memory SQLite database with all tables created."""
    db = DatabaseConnection(url="sqlite+aiosqlite:///:memory:")
    await db.create_tables()
    yield db
    await db.close()


@pytest.fixture
def sql_backend(sqlite_db):
    return SqlDocumentBackend(sqlite_db)


@pytest.fixture
def sql_store(sql_backend, clock, app_id):
    return SubscriptionStore(sql_backend, app_id=app_id, load_timeout=1.0, clock=clock)
