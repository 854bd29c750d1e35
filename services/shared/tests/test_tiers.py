"""Tests for the tier catalog."""

from dataclasses import replace

import pytest

from humidor_core.subscriptions.tiers import (
    DEFAULT_CATALOG,
    DEFAULT_TIER_LIMITS,
    UNLIMITED,
    Tier,
    TierCatalog,
    limits_for,
    requires_premium,
)


class TestLimitsFor:
    """Tests for limits_for lookups."""

    def test_free_limits_match_catalog_table(self):
        limits = limits_for(Tier.FREE)
        assert limits.max_items == 50
        assert limits.csv_import_allowed is False
        assert limits.csv_export_allowed is True
        assert limits.ai_calls_per_period == 5
        assert "limited_ai" in limits.feature_flags

    def test_premium_limits_match_catalog_table(self):
        limits = limits_for(Tier.PREMIUM)
        assert limits.max_items is UNLIMITED
        assert limits.unlimited_items
        assert limits.csv_import_allowed is True
        assert limits.ai_calls_per_period == 100
        assert "advanced_analytics" in limits.feature_flags

    def test_every_tier_has_limits(self):
        for tier in Tier:
            assert DEFAULT_CATALOG.limits_for(tier) is DEFAULT_TIER_LIMITS[tier]

    def test_wire_value_is_accepted(self):
        assert limits_for("premium") is DEFAULT_TIER_LIMITS[Tier.PREMIUM]

    @pytest.mark.parametrize("value", ["gold", "", None, 42, "PREMIUM"])
    def test_unknown_tier_falls_back_to_free(self, value):
        assert limits_for(value) is DEFAULT_TIER_LIMITS[Tier.FREE]

    def test_premium_quotas_at_least_free(self):
        free = limits_for(Tier.FREE)
        premium = limits_for(Tier.PREMIUM)
        assert premium.ai_calls_per_period >= free.ai_calls_per_period


class TestTierCatalogValidation:
    """Tests for catalog invariants checked at construction."""

    def test_missing_tier_rejected(self):
        with pytest.raises(ValueError, match="missing limits"):
            TierCatalog({Tier.FREE: DEFAULT_TIER_LIMITS[Tier.FREE]})

    def test_limited_premium_rejected(self):
        entries = dict(DEFAULT_TIER_LIMITS)
        entries[Tier.PREMIUM] = replace(entries[Tier.PREMIUM], max_items=500)
        with pytest.raises(ValueError, match="unlimited"):
            TierCatalog(entries)

    def test_premium_ai_quota_below_free_rejected(self):
        entries = dict(DEFAULT_TIER_LIMITS)
        entries[Tier.PREMIUM] = replace(entries[Tier.PREMIUM], ai_calls_per_period=1)
        with pytest.raises(ValueError, match="AI quota"):
            TierCatalog(entries)

    def test_premium_must_allow_free_capabilities(self):
        entries = dict(DEFAULT_TIER_LIMITS)
        entries[Tier.PREMIUM] = replace(entries[Tier.PREMIUM], csv_export_allowed=False)
        with pytest.raises(ValueError, match="everything the free tier allows"):
            TierCatalog(entries)


class TestRequiresPremium:
    """Tests for guarded feature names."""

    @pytest.mark.parametrize("feature", ["csvImport", "unlimitedCigars", "advancedAnalytics"])
    def test_guarded_features_require_premium(self, feature):
        assert requires_premium(feature)

    def test_other_features_do_not(self):
        assert not requires_premium("csvExport")
