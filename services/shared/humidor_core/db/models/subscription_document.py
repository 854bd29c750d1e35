"""Subscription document model: one JSON document per (app, user)."""

from typing import Any

from sqlalchemy import JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin


class SubscriptionDocument(Base, TimestampMixin):
    """Stored subscription document keyed by application and user.

    ``document`` holds the wire-format fields (``tier``, ``status``,
    ``aiLookupsUsed``, ``renewsOn``, ``createdAt``, ``usagePeriod``)
    exactly as clients have always stored them.
    """

    __tablename__ = "SubscriptionDocuments"

    app_id: Mapped[str] = mapped_column(
        String(128),
        primary_key=True,
        comment="Application namespace (e.g., 'humidor-hub')",
    )
    user_id: Mapped[str] = mapped_column(
        String(128),
        primary_key=True,
        comment="Auth provider user ID",
    )
    document: Mapped[dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
    )
