"""Subscription record value object and its wire document codec.

Stored documents keep the field names existing clients wrote
(``aiLookupsUsed``, ``renewsOn``, ...). Decoding is lenient: malformed
values degrade to the safest interpretation instead of failing the read.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from datetime import date, datetime, timezone
from typing import Any

from ..logging.config import get_logger
from .tiers import SubscriptionStatus, Tier

logger = get_logger(__name__)

# Record attribute -> wire document field
WIRE_FIELDS: dict[str, str] = {
    "tier": "tier",
    "status": "status",
    "ai_calls_used": "aiLookupsUsed",
    "renews_on": "renewsOn",
    "created_at": "createdAt",
    "usage_period": "usagePeriod",
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def period_key(moment: datetime | date) -> str:
    """Calendar-month usage period for a moment, e.g. ``"2025-08"``."""
    return f"{moment.year:04d}-{moment.month:02d}"


@dataclass(frozen=True)
class SubscriptionRecord:
    """A user's subscription: tier, status, usage counter and renewal date."""

    user_id: str
    tier: Tier = Tier.FREE
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE
    ai_calls_used: int = 0
    renews_on: date | None = None
    created_at: datetime | None = None
    usage_period: str | None = None
    # True when the record is a non-persisted stand-in for an unreadable one
    is_fallback: bool = False

    @property
    def is_active(self) -> bool:
        return self.status is SubscriptionStatus.ACTIVE

    @property
    def effective_tier(self) -> Tier:
        """Tier used for limit lookups: FREE unless the record is active."""
        return self.tier if self.is_active else Tier.FREE

    @classmethod
    def default(cls, user_id: str, now: datetime) -> SubscriptionRecord:
        """First-time record for a user with no stored subscription."""
        return cls(
            user_id=user_id,
            created_at=now,
            usage_period=period_key(now),
        )

    @classmethod
    def fallback(cls, user_id: str) -> SubscriptionRecord:
        """Stand-in served when the backend cannot be read."""
        return cls(user_id=user_id, is_fallback=True)

    def with_changes(self, **changes: Any) -> SubscriptionRecord:
        return replace(self, **changes)

    def to_document(self) -> dict[str, Any]:
        """Encode the record as its wire document."""
        return encode_fields(
            {
                "tier": self.tier,
                "status": self.status,
                "ai_calls_used": self.ai_calls_used,
                "renews_on": self.renews_on,
                "created_at": self.created_at,
                "usage_period": self.usage_period,
            }
        )

    @classmethod
    def from_document(cls, user_id: str, document: dict[str, Any]) -> SubscriptionRecord:
        """Decode a stored wire document."""
        return cls(
            user_id=user_id,
            tier=_decode_tier(user_id, document.get("tier")),
            status=_decode_status(document.get("status")),
            ai_calls_used=_decode_count(document.get("aiLookupsUsed")),
            renews_on=_decode_date(document.get("renewsOn")),
            created_at=_decode_timestamp(document.get("createdAt")),
            usage_period=_decode_period(document.get("usagePeriod")),
        )


def encode_fields(changes: dict[str, Any]) -> dict[str, Any]:
    """Translate record attribute changes into wire document fields.

    Raises:
        ValueError: If a name is not a persisted record attribute.
    """
    unknown = sorted(set(changes) - set(WIRE_FIELDS))
    if unknown:
        raise ValueError(f"Not a subscription record field: {', '.join(unknown)}")

    encoded: dict[str, Any] = {}
    for name, value in changes.items():
        if isinstance(value, (Tier, SubscriptionStatus)):
            value = value.value
        elif isinstance(value, datetime):
            value = value.isoformat()
        elif isinstance(value, date):
            value = value.isoformat()
        elif name == "ai_calls_used":
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                raise ValueError(f"ai_calls_used must be a non-negative integer, got {value!r}")
        encoded[WIRE_FIELDS[name]] = value
    return encoded


def _decode_tier(user_id: str, value: Any) -> Tier:
    tier = Tier.parse(value)
    if tier is None:
        logger.warning("Stored subscription has unknown tier", user_id=user_id, tier=repr(value))
        return Tier.FREE
    return tier


def _decode_status(value: Any) -> SubscriptionStatus:
    if value is None:
        return SubscriptionStatus.ACTIVE
    try:
        return SubscriptionStatus(value)
    except ValueError:
        return SubscriptionStatus.EXPIRED


def _decode_count(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    if isinstance(value, float) and not math.isfinite(value):
        return 0
    return max(int(value), 0)


def _decode_date(value: Any) -> date | None:
    if not value or not isinstance(value, str):
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def _decode_timestamp(value: Any) -> datetime | None:
    if not value or not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _decode_period(value: Any) -> str | None:
    if not isinstance(value, str) or len(value) != 7 or value[4] != "-":
        return None
    year, month = value[:4], value[5:]
    if not (year.isdigit() and month.isdigit() and 1 <= int(month) <= 12):
        return None
    return value


@dataclass(frozen=True)
class MutationResult:
    """Outcome of a write: the updated record, or why the write failed."""

    ok: bool
    record: SubscriptionRecord | None = None
    reason: str | None = None

    @classmethod
    def success(cls, record: SubscriptionRecord) -> MutationResult:
        return cls(ok=True, record=record)

    @classmethod
    def failure(cls, reason: str) -> MutationResult:
        return cls(ok=False, reason=reason)
