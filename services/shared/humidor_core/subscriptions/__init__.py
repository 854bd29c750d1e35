"""Subscription tiers, record store and entitlement decisions."""

from .backends import DocumentBackend, InMemoryDocumentBackend, SqlDocumentBackend
from .entitlements import EntitlementService, ItemAllowance, is_at_limit, is_near_limit
from .errors import SubscriptionBackendError, SubscriptionError
from .records import MutationResult, SubscriptionRecord, period_key
from .store import SubscriptionStore
from .tiers import (
    DEFAULT_CATALOG,
    UNLIMITED,
    SubscriptionStatus,
    Tier,
    TierCatalog,
    TierLimits,
    limits_for,
    requires_premium,
)

__all__ = [
    "DEFAULT_CATALOG",
    "DocumentBackend",
    "EntitlementService",
    "InMemoryDocumentBackend",
    "ItemAllowance",
    "MutationResult",
    "SqlDocumentBackend",
    "SubscriptionBackendError",
    "SubscriptionError",
    "SubscriptionRecord",
    "SubscriptionStatus",
    "SubscriptionStore",
    "Tier",
    "TierCatalog",
    "TierLimits",
    "UNLIMITED",
    "is_at_limit",
    "is_near_limit",
    "limits_for",
    "period_key",
    "requires_premium",
]
