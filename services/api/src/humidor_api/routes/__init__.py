"""API route modules."""

from . import billing, health, subscription

__all__ = ["billing", "health", "subscription"]
