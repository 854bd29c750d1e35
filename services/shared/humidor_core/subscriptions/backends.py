"""Document backends for subscription records.

A backend stores one JSON-shaped document per ``(app_id, user_id)`` and
supports three operations: read, create-if-absent and field merge. Backends
raise ``SubscriptionBackendError`` for any I/O failure.
"""

from __future__ import annotations

import copy
from typing import Any, Protocol

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..db.connection import DatabaseConnection
from ..db.models import SubscriptionDocument
from .errors import SubscriptionBackendError


class DocumentBackend(Protocol):
    """Persistence for subscription documents."""

    async def get(self, app_id: str, user_id: str) -> dict[str, Any] | None:
        """Return the stored document, or None if the user has none."""
        ...

    async def create_if_absent(
        self, app_id: str, user_id: str, document: dict[str, Any]
    ) -> dict[str, Any]:
        """Store ``document`` unless one exists; return whichever is stored."""
        ...

    async def merge(self, app_id: str, user_id: str, fields: dict[str, Any]) -> dict[str, Any]:
        """Merge ``fields`` into the stored document and return the result."""
        ...


class InMemoryDocumentBackend:
    """Dict-backed backend for local development and tests."""

    def __init__(self) -> None:
        self._documents: dict[tuple[str, str], dict[str, Any]] = {}

    async def get(self, app_id: str, user_id: str) -> dict[str, Any] | None:
        document = self._documents.get((app_id, user_id))
        return copy.deepcopy(document) if document is not None else None

    async def create_if_absent(
        self, app_id: str, user_id: str, document: dict[str, Any]
    ) -> dict[str, Any]:
        stored = self._documents.setdefault((app_id, user_id), copy.deepcopy(document))
        return copy.deepcopy(stored)

    async def merge(self, app_id: str, user_id: str, fields: dict[str, Any]) -> dict[str, Any]:
        merged = {**self._documents.get((app_id, user_id), {}), **copy.deepcopy(fields)}
        self._documents[(app_id, user_id)] = merged
        return copy.deepcopy(merged)


class SqlDocumentBackend:
    """Backend storing documents in the ``SubscriptionDocuments`` table."""

    def __init__(self, db: DatabaseConnection):
        self.db = db

    async def get(self, app_id: str, user_id: str) -> dict[str, Any] | None:
        try:
            async with self.db.session() as session:
                row = await self._get_row(session, app_id, user_id)
                return dict(row.document) if row is not None else None
        except (SQLAlchemyError, OSError) as e:
            raise SubscriptionBackendError(
                f"Failed to read subscription document: {e}", operation="get", user_id=user_id
            ) from e

    async def create_if_absent(
        self, app_id: str, user_id: str, document: dict[str, Any]
    ) -> dict[str, Any]:
        try:
            async with self.db.session() as session:
                session.add(
                    SubscriptionDocument(app_id=app_id, user_id=user_id, document=dict(document))
                )
            return dict(document)
        except IntegrityError:
            # Another client created the document first; theirs wins
            existing = await self.get(app_id, user_id)
            if existing is None:
                raise SubscriptionBackendError(
                    "Subscription document vanished after conflicting create",
                    operation="create",
                    user_id=user_id,
                )
            return existing
        except (SQLAlchemyError, OSError) as e:
            raise SubscriptionBackendError(
                f"Failed to create subscription document: {e}", operation="create", user_id=user_id
            ) from e

    async def merge(self, app_id: str, user_id: str, fields: dict[str, Any]) -> dict[str, Any]:
        try:
            async with self.db.session() as session:
                row = await self._get_row(session, app_id, user_id)
                if row is None:
                    row = SubscriptionDocument(app_id=app_id, user_id=user_id, document={})
                    session.add(row)
                # Assign a new dict so the JSON column is flagged dirty
                row.document = {**(row.document or {}), **fields}
                return dict(row.document)
        except (SQLAlchemyError, OSError) as e:
            raise SubscriptionBackendError(
                f"Failed to merge subscription document: {e}", operation="merge", user_id=user_id
            ) from e

    @staticmethod
    async def _get_row(session, app_id: str, user_id: str) -> SubscriptionDocument | None:
        result = await session.execute(
            select(SubscriptionDocument).where(
                SubscriptionDocument.app_id == app_id,
                SubscriptionDocument.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()
