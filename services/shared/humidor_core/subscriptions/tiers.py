"""Subscription tiers and the static catalog of their limits.

Limits are defined in code. To change what a tier allows, edit
``DEFAULT_TIER_LIMITS``; the catalog validates the table on construction.
"""

from __future__ import annotations

import enum
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Final

from ..logging.config import get_logger

logger = get_logger(__name__)

# Sentinel for "no cap" on a numeric limit
UNLIMITED: Final = None


class Tier(str, enum.Enum):
    """Subscription plan level."""

    FREE = "free"
    PREMIUM = "premium"

    @classmethod
    def parse(cls, value: Any) -> Tier | None:
        """Return the Tier for a tier or wire value, or None if unrecognized."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


class SubscriptionStatus(str, enum.Enum):
    """Status of a subscription record.

    Only ACTIVE grants the tier's limits; the other states are reserved for
    billing-driven soft expiry.
    """

    ACTIVE = "active"
    CANCELED = "canceled"
    PAST_DUE = "past_due"
    EXPIRED = "expired"


@dataclass(frozen=True)
class TierLimits:
    """Limits and capabilities granted by one tier."""

    max_items: int | None
    csv_import_allowed: bool
    csv_export_allowed: bool
    ai_calls_per_period: int
    feature_flags: frozenset[str] = field(default_factory=frozenset)

    @property
    def unlimited_items(self) -> bool:
        return self.max_items is UNLIMITED


DEFAULT_TIER_LIMITS: dict[Tier, TierLimits] = {
    Tier.FREE: TierLimits(
        max_items=50,
        csv_import_allowed=False,
        csv_export_allowed=True,
        ai_calls_per_period=5,  # per month
        feature_flags=frozenset({"basic_tracking", "export_only", "limited_ai"}),
    ),
    Tier.PREMIUM: TierLimits(
        max_items=UNLIMITED,
        csv_import_allowed=True,
        csv_export_allowed=True,
        ai_calls_per_period=100,  # per month
        feature_flags=frozenset(
            {"unlimited_tracking", "full_import_export", "unlimited_ai", "advanced_analytics"}
        ),
    ),
}

# Guarded app features that are locked for free users
PREMIUM_FEATURES: frozenset[str] = frozenset({"csvImport", "unlimitedCigars", "advancedAnalytics"})


def requires_premium(feature: str) -> bool:
    """Check whether a guarded app feature is premium-only."""
    return feature in PREMIUM_FEATURES


class TierCatalog:
    """Read-only lookup of TierLimits by Tier."""

    def __init__(self, entries: Mapping[Tier, TierLimits]):
        missing = [tier.value for tier in Tier if tier not in entries]
        if missing:
            raise ValueError(f"Tier catalog is missing limits for: {', '.join(missing)}")
        unknown = [key for key in entries if not isinstance(key, Tier)]
        if unknown:
            raise ValueError(f"Tier catalog has entries for unknown tiers: {unknown!r}")

        free = entries[Tier.FREE]
        premium = entries[Tier.PREMIUM]
        if not premium.unlimited_items:
            raise ValueError("Premium tier must have unlimited items")
        if premium.ai_calls_per_period < free.ai_calls_per_period:
            raise ValueError("Premium AI quota must be at least the free AI quota")
        if (free.csv_import_allowed and not premium.csv_import_allowed) or (
            free.csv_export_allowed and not premium.csv_export_allowed
        ):
            raise ValueError("Premium tier must allow everything the free tier allows")

        self._entries = dict(entries)

    def limits_for(self, tier: Tier | str) -> TierLimits:
        """Get the limits for a tier.

        Unrecognized values fall back to FREE limits so corrupted data never
        grants premium entitlements.
        """
        parsed = Tier.parse(tier)
        if parsed is None:
            logger.warning("Unknown tier, using free limits", tier=repr(tier))
            parsed = Tier.FREE
        return self._entries[parsed]

    def __iter__(self):
        return iter(self._entries.items())


DEFAULT_CATALOG = TierCatalog(DEFAULT_TIER_LIMITS)


def limits_for(tier: Tier | str) -> TierLimits:
    """Get limits for a tier from the default catalog."""
    return DEFAULT_CATALOG.limits_for(tier)
