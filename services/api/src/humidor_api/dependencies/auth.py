"""Caller identity dependencies.

The gateway in front of this service authenticates users and forwards the
user ID in ``X-User-ID``. The billing collaborator authenticates with a
shared token in ``X-Billing-Token``.
"""

from __future__ import annotations

import hmac

from fastapi import Header, HTTPException, Request, status
from humidor_core.logging.config import get_logger

logger = get_logger(__name__)


async def require_user(x_user_id: str | None = Header(default=None)) -> str:
    """FastAPI dependency returning the authenticated user ID.

    Raises:
        HTTPException 401 if the gateway did not forward a user ID.
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return x_user_id.strip()


async def require_billing(
    request: Request,
    x_billing_token: str | None = Header(default=None),
) -> None:
    """FastAPI dependency guarding the billing write path.

    Without a configured token the path is open only in development, where
    testers switch tiers by hand.
    """
    settings = request.app.state.settings
    expected = settings.subscription.billing_token

    if not expected:
        if settings.is_development:
            return
        logger.error("Billing token not configured; rejecting tier change")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Billing access is not configured",
        )

    if not x_billing_token or not hmac.compare_digest(x_billing_token, expected):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid billing token",
        )
