"""Billing collaborator routes: the write path for tier changes."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from humidor_core.logging.config import get_logger
from humidor_core.subscriptions import EntitlementService, Tier

from ..dependencies.auth import require_billing
from ..dependencies.entitlements import get_entitlement_service

logger = get_logger(__name__)
router = APIRouter(
    prefix="/api/v1/billing",
    tags=["Billing"],
    dependencies=[Depends(require_billing)],
)


class TierChangeRequest(BaseModel):
    user_id: str = Field(min_length=1, max_length=128)
    tier: Tier


class TierChangeResponse(BaseModel):
    user_id: str
    tier: str
    status: str
    ai_calls_used: int
    renews_on: date | None


@router.post("/tier", response_model=TierChangeResponse, summary="Change Subscription Tier")
async def change_tier(
    body: TierChangeRequest,
    service: EntitlementService = Depends(get_entitlement_service),
) -> TierChangeResponse:
    """Record the tier a user now holds after an upgrade or downgrade.

    Payments are processed by the platform billing console; this only
    records the result. Returns 503 when the change could not be saved.
    """
    result = await service.change_tier(body.user_id, body.tier)
    if not result.ok:
        logger.warning(
            "Returning 503 for tier change",
            user_id=body.user_id,
            tier=body.tier.value,
            reason=result.reason,
        )
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=result.reason,
        )

    record = result.record
    return TierChangeResponse(
        user_id=record.user_id,
        tier=record.tier.value,
        status=record.status.value,
        ai_calls_used=record.ai_calls_used,
        renews_on=record.renews_on,
    )
