# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Stats projection persistence.

Projections are keyed by (scope kind, scope id) and always written as a
whole record. SQLProjectionStore stores the encoded projection in the
``stats_projections`` table and writes with a single upsert statement, so
concurrent writers never leave a partially written record behind.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.stats.codec import encode, parse
from src.domains.stats.exceptions import MalformedProjection, StoreWriteFailed
from src.domains.stats.models import ScopeKind, StatsProjection
from src.infrastructure.database.connection import DatabaseError, get_session
from src.infrastructure.database.models.stats import StatsProjectionRecord

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]


class ProjectionStore(ABC):
    """Keyed storage for statistics projections."""

    @abstractmethod
    async def load(self, kind: ScopeKind, scope_id: str) -> StatsProjection | None:
        """Load a stored projection.

        Returns:
            The projection, or None if nothing is stored for the key.

        Raises:
            MalformedProjection: If the stored record cannot be parsed.
        """
        ...

    @abstractmethod
    async def save(self, projection: StatsProjection) -> None:
        """Replace the stored projection for the projection's key.

        Raises:
            StoreWriteFailed: If the record could not be written.
        """
        ...

    @abstractmethod
    async def delete(self, kind: ScopeKind, scope_id: str) -> None:
        """Remove the stored projection, if any."""
        ...


class SQLProjectionStore(ProjectionStore):
    """Projection store backed by the ``stats_projections`` table."""

    def __init__(self, session_factory: SessionFactory = get_session) -> None:
        self._session_factory = session_factory

    async def load(self, kind: ScopeKind, scope_id: str) -> StatsProjection | None:
        stmt = select(StatsProjectionRecord.payload).where(
            StatsProjectionRecord.scope_kind == kind.value,
            StatsProjectionRecord.scope_id == scope_id,
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            payload = result.scalar_one_or_none()

        if payload is None:
            return None

        projection = parse(payload)
        if projection.scope_kind is not kind or projection.scope_id != scope_id:
            raise MalformedProjection(
                f"Stored projection {kind.value}:{scope_id} holds "
                f"{projection.scope_kind.value}:{projection.scope_id}"
            )
        return projection

    async def save(self, projection: StatsProjection) -> None:
        stmt = insert(StatsProjectionRecord).values(
            scope_kind=projection.scope_kind.value,
            scope_id=projection.scope_id,
            schema_version=projection.schema_version,
            payload=encode(projection),
            computed_at=projection.computed_at,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[StatsProjectionRecord.scope_kind, StatsProjectionRecord.scope_id],
            set_={
                "schema_version": stmt.excluded.schema_version,
                "payload": stmt.excluded.payload,
                "computed_at": stmt.excluded.computed_at,
            },
        )

        try:
            async with self._session_factory() as session:
                await session.execute(stmt)
        except (DatabaseError, SQLAlchemyError) as e:
            raise StoreWriteFailed(
                f"Failed to save {projection.scope_kind.value} projection {projection.scope_id}",
                e,
            ) from e

        logger.debug(
            "Saved %s projection: %s", projection.scope_kind.value, projection.scope_id
        )

    async def delete(self, kind: ScopeKind, scope_id: str) -> None:
        stmt = delete(StatsProjectionRecord).where(
            StatsProjectionRecord.scope_kind == kind.value,
            StatsProjectionRecord.scope_id == scope_id,
        )
        async with self._session_factory() as session:
            await session.execute(stmt)

        logger.debug("Deleted %s projection: %s", kind.value, scope_id)
