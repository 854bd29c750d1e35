"""SQLAlchemy database models for Humidor Hub."""

from .base import Base, TimestampMixin
from .subscription_document import SubscriptionDocument

__all__ = [
    "Base",
    "SubscriptionDocument",
    "TimestampMixin",
]
