"""Subscription record store.

Reads and writes one subscription document per user through a
``DocumentBackend``. Reads degrade to a FREE fallback record instead of
raising, so callers can always render an entitlement decision. Writes
surface failures as ``SubscriptionBackendError``.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import datetime
from typing import Any

from ..logging.config import get_logger
from .backends import DocumentBackend
from .errors import SubscriptionBackendError
from .records import SubscriptionRecord, encode_fields, utcnow

logger = get_logger(__name__)

DEFAULT_LOAD_TIMEOUT_SECONDS = 5.0


class SubscriptionStore:
    """Per-application store of subscription records."""

    def __init__(
        self,
        backend: DocumentBackend,
        app_id: str,
        load_timeout: float = DEFAULT_LOAD_TIMEOUT_SECONDS,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.backend = backend
        self.app_id = app_id
        self.load_timeout = load_timeout
        self.clock = clock

    async def load(self, user_id: str) -> SubscriptionRecord:
        """Load a user's record, creating the default record on first use.

        Never raises for backend failures or timeouts: those return a
        non-persisted FREE fallback record with ``is_fallback`` set.
        """
        try:
            return await asyncio.wait_for(self.fetch(user_id), timeout=self.load_timeout)
        except SubscriptionBackendError as e:
            logger.warning(
                "Subscription read failed, serving fallback",
                user_id=user_id,
                operation=e.operation,
                error=str(e),
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Subscription read timed out, serving fallback",
                user_id=user_id,
                timeout_seconds=self.load_timeout,
            )
        return SubscriptionRecord.fallback(user_id)

    async def fetch(self, user_id: str) -> SubscriptionRecord:
        """Load a user's record, raising if the backend fails.

        Mutations build on this rather than ``load`` so a fallback record
        is never written back over real usage.

        Raises:
            SubscriptionBackendError: If the backend cannot be read.
        """
        logger.debug("Fetching subscription", app_id=self.app_id, user_id=user_id)
        document = await self.backend.get(self.app_id, user_id)

        if document is None:
            default = SubscriptionRecord.default(user_id, self.clock())
            document = await self.backend.create_if_absent(
                self.app_id, user_id, default.to_document()
            )
            logger.info("Created default subscription", app_id=self.app_id, user_id=user_id)

        record = SubscriptionRecord.from_document(user_id, document)
        logger.debug(
            "Fetched subscription",
            user_id=user_id,
            tier=record.tier.value,
            ai_calls_used=record.ai_calls_used,
        )
        return record

    async def save(self, user_id: str, changes: dict[str, Any]) -> SubscriptionRecord:
        """Merge record field changes into the stored document.

        Fields not named in ``changes`` keep their stored values.

        Args:
            user_id: User whose record to update.
            changes: Record attribute names mapped to new values,
                e.g. ``{"ai_calls_used": 3}``.

        Returns:
            The record as stored after the merge.

        Raises:
            ValueError: If ``changes`` names a field that is not persisted.
            SubscriptionBackendError: If the write fails.
        """
        fields = encode_fields(changes)
        logger.debug("Saving subscription", user_id=user_id, fields=sorted(fields))
        try:
            document = await self.backend.merge(self.app_id, user_id, fields)
        except SubscriptionBackendError as e:
            logger.error(
                "Subscription write failed",
                user_id=user_id,
                fields=sorted(fields),
                error=str(e),
            )
            raise

        logger.info("Saved subscription", user_id=user_id, fields=sorted(fields))
        return SubscriptionRecord.from_document(user_id, document)
