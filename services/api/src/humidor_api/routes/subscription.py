"""Subscription status and entitlement API routes."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel

from humidor_core.logging.config import get_logger
from humidor_core.subscriptions import EntitlementService, SubscriptionRecord, requires_premium

from ..dependencies.entitlements import get_current_record, get_entitlement_service

logger = get_logger(__name__)
router = APIRouter(prefix="/api/v1/subscription", tags=["Subscription"])


# --- Response Models ---


class AiUsageStatus(BaseModel):
    used: int
    limit: int
    remaining: int
    can_use: bool


class SubscriptionStatusResponse(BaseModel):
    tier: str
    status: str
    is_premium: bool
    renews_on: date | None
    ai: AiUsageStatus
    csv_import: bool
    csv_export: bool
    features: list[str]
    degraded: bool


class ItemAllowanceResponse(BaseModel):
    current_count: int
    can_add: bool
    remaining: int | None
    max_items: int | None
    is_near_limit: bool
    is_at_limit: bool


class FeatureAccessResponse(BaseModel):
    feature: str
    allowed: bool


def _ai_status(service: EntitlementService, record: SubscriptionRecord) -> AiUsageStatus:
    return AiUsageStatus(
        used=service.ai_calls_in_period(record),
        limit=service.limits_for_record(record).ai_calls_per_period,
        remaining=service.remaining_ai_calls(record),
        can_use=service.can_use_ai_feature(record),
    )


# --- Routes ---


@router.get("", response_model=SubscriptionStatusResponse, summary="Get Subscription Status")
async def get_subscription_status(
    record: SubscriptionRecord = Depends(get_current_record),
    service: EntitlementService = Depends(get_entitlement_service),
) -> SubscriptionStatusResponse:
    """Get the caller's tier, usage and capabilities."""
    limits = service.limits_for_record(record)
    return SubscriptionStatusResponse(
        tier=record.tier.value,
        status=record.status.value,
        is_premium=service.is_premium(record),
        renews_on=record.renews_on,
        ai=_ai_status(service, record),
        csv_import=limits.csv_import_allowed,
        csv_export=limits.csv_export_allowed,
        features=sorted(limits.feature_flags),
        degraded=record.is_fallback,
    )


@router.get("/items", response_model=ItemAllowanceResponse, summary="Check Item Allowance")
async def get_item_allowance(
    current_count: int = Query(..., ge=0, description="Items currently in the collection"),
    record: SubscriptionRecord = Depends(get_current_record),
    service: EntitlementService = Depends(get_entitlement_service),
) -> ItemAllowanceResponse:
    """Whether the caller may add another item to a collection of this size."""
    allowance = service.item_allowance(record, current_count)
    return ItemAllowanceResponse(
        current_count=current_count,
        can_add=allowance.can_add,
        remaining=allowance.remaining,
        max_items=allowance.max_items,
        is_near_limit=allowance.is_near_limit,
        is_at_limit=allowance.is_at_limit,
    )


@router.get(
    "/features/{feature}",
    response_model=FeatureAccessResponse,
    summary="Check Feature Access",
)
async def get_feature_access(
    feature: str,
    record: SubscriptionRecord = Depends(get_current_record),
    service: EntitlementService = Depends(get_entitlement_service),
) -> FeatureAccessResponse:
    """Whether a guarded feature (e.g. ``csvImport``) or feature flag is available."""
    if requires_premium(feature):
        allowed = service.can_access(record, feature)
    else:
        allowed = service.has_feature(record, feature)
    return FeatureAccessResponse(feature=feature, allowed=allowed)


@router.post("/ai-usage", response_model=AiUsageStatus, summary="Record AI Usage")
async def record_ai_usage(
    record: SubscriptionRecord = Depends(get_current_record),
    service: EntitlementService = Depends(get_entitlement_service),
) -> AiUsageStatus:
    """Count one AI lookup against the caller's monthly quota.

    Called after the AI request has been sent. Returns 503 when the usage
    could not be saved; the client decides whether to retry.
    """
    result = await service.record_ai_usage(record)
    if not result.ok:
        logger.warning("Returning 503 for AI usage", user_id=record.user_id, reason=result.reason)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=result.reason,
        )
    return _ai_status(service, result.record)
