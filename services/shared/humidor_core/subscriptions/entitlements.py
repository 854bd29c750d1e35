"""Entitlement decisions and usage mutations.

Query methods are pure: they take a SubscriptionRecord (plus any
caller-supplied counts) and answer with booleans or numbers. Quota
exhaustion is never an exception. Mutation methods go through the store
and report their outcome as a MutationResult.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from ..logging.config import get_logger
from .errors import SubscriptionBackendError
from .records import MutationResult, SubscriptionRecord, period_key, utcnow
from .store import SubscriptionStore
from .tiers import DEFAULT_CATALOG, SubscriptionStatus, Tier, TierCatalog, TierLimits, requires_premium

logger = get_logger(__name__)

NEAR_LIMIT_THRESHOLD = 10
DEFAULT_RENEWAL_DAYS = 30


@dataclass(frozen=True)
class ItemAllowance:
    """Collection-size entitlement for a given item count."""

    can_add: bool
    remaining: int | None  # None = unlimited
    is_near_limit: bool
    is_at_limit: bool
    max_items: int | None


def is_near_limit(remaining: int | None) -> bool:
    """True when a limited collection has at most ten free slots left."""
    return remaining is not None and remaining <= NEAR_LIMIT_THRESHOLD


def is_at_limit(remaining: int | None) -> bool:
    """True when a limited collection is full or over its limit."""
    return remaining is not None and remaining <= 0


class EntitlementService:
    """Answers capability queries for subscription records."""

    def __init__(
        self,
        store: SubscriptionStore,
        catalog: TierCatalog = DEFAULT_CATALOG,
        clock: Callable[[], datetime] = utcnow,
        renewal_days: int = DEFAULT_RENEWAL_DAYS,
    ) -> None:
        self.store = store
        self.catalog = catalog
        self.clock = clock
        self.renewal_days = renewal_days

    # --- Queries ---

    def limits_for_record(self, record: SubscriptionRecord) -> TierLimits:
        return self.catalog.limits_for(record.effective_tier)

    def is_premium(self, record: SubscriptionRecord) -> bool:
        return record.effective_tier is Tier.PREMIUM

    def is_free(self, record: SubscriptionRecord) -> bool:
        return record.effective_tier is Tier.FREE

    def can_add_item(self, record: SubscriptionRecord, current_count: int) -> bool:
        limits = self.limits_for_record(record)
        if limits.unlimited_items:
            return True
        return current_count < limits.max_items

    def remaining_slots(self, record: SubscriptionRecord, current_count: int) -> int | None:
        """Free collection slots, or None when unlimited.

        Negative when the collection is over the limit, e.g. after a
        downgrade from premium.
        """
        limits = self.limits_for_record(record)
        if limits.unlimited_items:
            return None
        return limits.max_items - current_count

    is_near_limit = staticmethod(is_near_limit)
    is_at_limit = staticmethod(is_at_limit)

    def item_allowance(self, record: SubscriptionRecord, current_count: int) -> ItemAllowance:
        remaining = self.remaining_slots(record, current_count)
        return ItemAllowance(
            can_add=self.can_add_item(record, current_count),
            remaining=remaining,
            is_near_limit=is_near_limit(remaining),
            is_at_limit=is_at_limit(remaining),
            max_items=self.limits_for_record(record).max_items,
        )

    def can_import_csv(self, record: SubscriptionRecord) -> bool:
        return self.limits_for_record(record).csv_import_allowed

    def can_export_csv(self, record: SubscriptionRecord) -> bool:
        return self.limits_for_record(record).csv_export_allowed

    def ai_calls_in_period(self, record: SubscriptionRecord) -> int:
        """AI calls counted against the current calendar month.

        A counter stamped with an earlier period belongs to a finished
        billing period and counts as zero. Unstamped counters are trusted.
        """
        if record.usage_period is not None and record.usage_period != period_key(self.clock()):
            return 0
        return record.ai_calls_used

    def can_use_ai_feature(self, record: SubscriptionRecord) -> bool:
        limits = self.limits_for_record(record)
        return self.ai_calls_in_period(record) < limits.ai_calls_per_period

    def remaining_ai_calls(self, record: SubscriptionRecord) -> int:
        limits = self.limits_for_record(record)
        return max(limits.ai_calls_per_period - self.ai_calls_in_period(record), 0)

    def has_feature(self, record: SubscriptionRecord, flag: str) -> bool:
        return flag in self.limits_for_record(record).feature_flags

    def can_access(self, record: SubscriptionRecord, feature: str) -> bool:
        """Whether a guarded app feature is available to the record's tier."""
        return not (requires_premium(feature) and self.is_free(record))

    # --- Reads and mutations ---

    async def get_record(self, user_id: str) -> SubscriptionRecord:
        """Current record for a user; degrades to FREE on backend errors."""
        return await self.store.load(user_id)

    async def record_ai_usage(self, record: SubscriptionRecord) -> MutationResult:
        """Count one AI call against the record's user.

        Call after the AI request has been dispatched. The increment is not
        transactional with that request. The freshest stored record is read
        first so a stale or retried caller cannot roll the counter back.
        """
        user_id = record.user_id
        try:
            fresh = await self.store.fetch(user_id)
            used = self.ai_calls_in_period(fresh) + 1
            updated = await self.store.save(
                user_id,
                {"ai_calls_used": used, "usage_period": period_key(self.clock())},
            )
        except SubscriptionBackendError as e:
            logger.warning("AI usage not recorded", user_id=user_id, error=str(e))
            return MutationResult.failure(f"Could not record AI usage: {e}")

        logger.info(
            "Recorded AI usage",
            user_id=user_id,
            ai_calls_used=updated.ai_calls_used,
            limit=self.limits_for_record(updated).ai_calls_per_period,
        )
        return MutationResult.success(updated)

    async def change_tier(self, user_id: str, new_tier: Tier | str) -> MutationResult:
        """Record a tier change from the billing collaborator.

        Resets the AI counter and sets the renewal date (premium) or clears
        it (free).

        Raises:
            ValueError: If ``new_tier`` is not a known tier.
        """
        tier = Tier.parse(new_tier)
        if tier is None:
            raise ValueError(f"Unknown subscription tier: {new_tier!r}")

        now = self.clock()
        renews_on = (now + timedelta(days=self.renewal_days)).date() if tier is Tier.PREMIUM else None
        try:
            # Creates the default document first so createdAt is stamped once
            await self.store.fetch(user_id)
            updated = await self.store.save(
                user_id,
                {
                    "tier": tier,
                    "status": SubscriptionStatus.ACTIVE,
                    "ai_calls_used": 0,
                    "usage_period": period_key(now),
                    "renews_on": renews_on,
                },
            )
        except SubscriptionBackendError as e:
            logger.warning("Tier change not saved", user_id=user_id, tier=tier.value, error=str(e))
            return MutationResult.failure(f"Could not change tier: {e}")

        logger.info(
            "Changed subscription tier",
            user_id=user_id,
            tier=tier.value,
            renews_on=renews_on.isoformat() if renews_on else None,
        )
        return MutationResult.success(updated)
