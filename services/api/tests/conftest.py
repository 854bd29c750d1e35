"""Pytest configuration and fixtures for API tests."""

import pytest
from fastapi.testclient import TestClient

from humidor_api.main import create_app
from humidor_core.config import Settings
from humidor_core.subscriptions import (
    EntitlementService,
    InMemoryDocumentBackend,
    SubscriptionStore,
)

APP_ID = "humidor-hub-api-test"
BILLING_TOKEN = "billing-secret"


# ============================================================================
# Application Fixtures
# ============================================================================


@pytest.fixture
def app_id():
    return APP_ID


@pytest.fixture
def settings(app_id):
    """Development settings with a billing token configured."""
    return Settings(
        environment="development",
        logging={"level": "WARNING", "json_format": False},
        subscription={"app_id": app_id, "backend": "memory", "billing_token": BILLING_TOKEN},
    )


@pytest.fixture
def backend():
    return InMemoryDocumentBackend()


@pytest.fixture
def entitlements(backend, app_id):
    store = SubscriptionStore(backend, app_id=app_id, load_timeout=1.0)
    return EntitlementService(store)


@pytest.fixture
def app(settings, entitlements):
    """FastAPI app serving an in-memory entitlement service."""
    return create_app(settings=settings, entitlements=entitlements)


@pytest.fixture
def client(app):
    """Test client with the application lifespan running."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def billing_headers():
    return {"X-Billing-Token": BILLING_TOKEN}
