"""Tests for the billing tier-change endpoint."""

from datetime import date, timedelta
from unittest.mock import AsyncMock

import pytest
from fastapi import status
from fastapi.testclient import TestClient

from humidor_api.main import create_app
from humidor_core.subscriptions import SubscriptionBackendError

USER_HEADERS = {"X-User-ID": "user-1"}


def change_tier(client, tier, headers, user_id="user-1"):
    return client.post(
        "/api/v1/billing/tier",
        json={"user_id": user_id, "tier": tier},
        headers=headers,
    )


class TestTierChange:
    """Tests for POST /api/v1/billing/tier."""

    def test_upgrade_to_premium(self, client, billing_headers):
        response = change_tier(client, "premium", billing_headers)

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["user_id"] == "user-1"
        assert data["tier"] == "premium"
        assert data["status"] == "active"
        assert data["ai_calls_used"] == 0
        assert date.fromisoformat(data["renews_on"]) > date.today()

    def test_upgrade_visible_to_user(self, client, billing_headers):
        client.post("/api/v1/subscription/ai-usage", headers=USER_HEADERS)
        change_tier(client, "premium", billing_headers)

        data = client.get("/api/v1/subscription", headers=USER_HEADERS).json()

        assert data["is_premium"] is True
        assert data["ai"]["used"] == 0
        assert data["ai"]["limit"] == 100
        assert data["csv_import"] is True

    def test_downgrade_clears_renewal(self, client, billing_headers):
        change_tier(client, "premium", billing_headers)

        data = change_tier(client, "free", billing_headers).json()

        assert data["tier"] == "free"
        assert data["renews_on"] is None

    def test_renewal_thirty_days_out(self, client, billing_headers):
        data = change_tier(client, "premium", billing_headers).json()

        renews_on = date.fromisoformat(data["renews_on"])
        assert timedelta(days=29) <= renews_on - date.today() <= timedelta(days=31)

    def test_unknown_tier_rejected(self, client, billing_headers):
        response = change_tier(client, "gold", billing_headers)

        assert response.status_code == 422
        assert response.json()["error"]["details"][0]["field"] == "body.tier"

    def test_empty_user_rejected(self, client, billing_headers):
        response = change_tier(client, "premium", billing_headers, user_id="")

        assert response.status_code == 422

    def test_write_failure_returns_503(self, client, backend, billing_headers):
        backend.merge = AsyncMock(
            side_effect=SubscriptionBackendError("down", operation="merge", user_id="user-1")
        )

        response = change_tier(client, "premium", billing_headers)

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert "Could not change tier" in response.json()["error"]["message"]


class TestBillingAuth:
    """The billing path requires the shared billing token."""

    def test_missing_token_rejected(self, client):
        response = change_tier(client, "premium", {})

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_wrong_token_rejected(self, client):
        response = change_tier(client, "premium", {"X-Billing-Token": "guess"})

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["error"]["message"] == "Invalid billing token"

    def test_user_header_is_not_enough(self, client):
        response = change_tier(client, "premium", USER_HEADERS)

        assert response.status_code == status.HTTP_403_FORBIDDEN

    @pytest.mark.parametrize(
        "environment, expected",
        [("development", status.HTTP_200_OK), ("production", status.HTTP_403_FORBIDDEN)],
    )
    def test_unconfigured_token(self, settings, entitlements, environment, expected):
        unconfigured = settings.model_copy(
            update={
                "environment": environment,
                "subscription": settings.subscription.model_copy(update={"billing_token": ""}),
            }
        )
        app = create_app(settings=unconfigured, entitlements=entitlements)

        with TestClient(app) as client:
            response = change_tier(client, "premium", {})

        assert response.status_code == expected

    def test_production_app_requires_its_configured_token(self, settings, entitlements):
        production = settings.model_copy(update={"environment": "production"})
        app = create_app(settings=production, entitlements=entitlements)

        with TestClient(app) as client:
            rejected = change_tier(client, "premium", {}, user_id="mallory")
            accepted = change_tier(
                client, "premium", {"X-Billing-Token": production.subscription.billing_token}
            )

        assert rejected.status_code == status.HTTP_403_FORBIDDEN
        assert accepted.status_code == status.HTTP_200_OK

    def test_settings_come_from_the_app_not_the_environment(
        self, settings, entitlements, monkeypatch
    ):
        monkeypatch.setenv("ENVIRONMENT", "development")
        monkeypatch.delenv("SUBSCRIPTION_BILLING_TOKEN", raising=False)
        production = settings.model_copy(update={"environment": "production"})
        app = create_app(settings=production, entitlements=entitlements)

        with TestClient(app) as client:
            response = change_tier(client, "premium", {})

        assert response.status_code == status.HTTP_403_FORBIDDEN
