"""Shared database module."""

from .connection import (
    DatabaseConnection,
    create_engine,
    create_session_factory,
    get_database_url,
)
from .models import Base, SubscriptionDocument, TimestampMixin

__all__ = [
    "Base",
    "DatabaseConnection",
    "SubscriptionDocument",
    "TimestampMixin",
    "create_engine",
    "create_session_factory",
    "get_database_url",
]
