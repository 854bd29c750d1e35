"""Entitlement service dependencies."""

from fastapi import Depends, HTTPException, Request, status

from humidor_core.subscriptions import EntitlementService, SubscriptionRecord

from .auth import require_user


def get_entitlement_service(request: Request) -> EntitlementService:
    """The EntitlementService built at application start-up."""
    service = getattr(request.app.state, "entitlements", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Subscription service is not available",
        )
    return service


async def get_current_record(
    user_id: str = Depends(require_user),
    service: EntitlementService = Depends(get_entitlement_service),
) -> SubscriptionRecord:
    """Current subscription record of the calling user (degrades to FREE)."""
    return await service.get_record(user_id)
