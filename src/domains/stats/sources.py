# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Read-side sources for the statistics engine.

EventLog lists learning events for a scope; MembershipResolver answers
who belongs to which team. Both are read at query time, so a projection
reflects the membership snapshot at the moment it was computed.

The SQL implementations read the ``learning_events``, ``employees`` and
``teams`` tables. Database failures surface as EventLogUnavailable.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import date

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from src.domains.stats.exceptions import EventLogUnavailable
from src.domains.stats.models import UNASSIGNED_TEAM_ID, LearningEvent, ScopeKind
from src.domains.stats.store import SessionFactory
from src.infrastructure.database.connection import DatabaseError, get_session
from src.infrastructure.database.models.learning import Employee, LearningEventRecord, Team

logger = logging.getLogger(__name__)

UNASSIGNED_TEAM_NAME = "Unassigned"

DateWindow = tuple[date, date]


class EventLog(ABC):
    """Source of learning events."""

    @abstractmethod
    async def list_events(
        self,
        scope_id: str,
        scope_kind: ScopeKind,
        window: DateWindow | None = None,
    ) -> list[LearningEvent]:
        """List learning events attributed to a scope.

        Args:
            scope_id: Employee, team or org id.
            scope_kind: Kind of scope.
            window: Optional inclusive (start, end) date range.

        Returns:
            Events in no particular order.

        Raises:
            EventLogUnavailable: If the events cannot be listed.
        """
        ...


class MembershipResolver(ABC):
    """Team and organization membership lookups."""

    @abstractmethod
    async def members_of(self, team_id: str) -> list[str]:
        """Employee ids in a team. ``UNASSIGNED_TEAM_ID`` lists employees without a team."""
        ...

    @abstractmethod
    async def teams_of(self, org_id: str) -> list[str]:
        """Team ids in the organization."""
        ...

    @abstractmethod
    async def team_of(self, employee_id: str) -> str | None:
        """Team id of an employee, or None."""
        ...

    @abstractmethod
    async def employee_exists(self, employee_id: str) -> bool: ...

    @abstractmethod
    async def team_exists(self, team_id: str) -> bool: ...

    @abstractmethod
    async def display_names(self, kind: ScopeKind, ids: Iterable[str]) -> dict[str, str]:
        """Display names for employees or teams; unknown ids are omitted."""
        ...


class SQLEventLog(EventLog):
    """Event log backed by the ``learning_events`` table."""

    def __init__(self, session_factory: SessionFactory = get_session) -> None:
        self._session_factory = session_factory

    async def list_events(
        self,
        scope_id: str,
        scope_kind: ScopeKind,
        window: DateWindow | None = None,
    ) -> list[LearningEvent]:
        stmt = select(
            LearningEventRecord.employee_id,
            LearningEventRecord.activity_type,
            LearningEventRecord.occurred_on,
            LearningEventRecord.duration_minutes,
            LearningEventRecord.tags,
        )

        if scope_kind is ScopeKind.EMPLOYEE:
            stmt = stmt.where(LearningEventRecord.employee_id == scope_id)
        elif scope_kind is ScopeKind.TEAM:
            stmt = stmt.join(Employee, Employee.id == LearningEventRecord.employee_id)
            if scope_id == UNASSIGNED_TEAM_ID:
                stmt = stmt.where(Employee.team_id.is_(None))
            else:
                stmt = stmt.where(Employee.team_id == scope_id)

        if window is not None:
            start, end = window
            stmt = stmt.where(
                LearningEventRecord.occurred_on >= start,
                LearningEventRecord.occurred_on <= end,
            )

        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                rows = result.all()
        except (DatabaseError, SQLAlchemyError) as e:
            logger.error("Failed to list events for %s %s: %s", scope_kind.value, scope_id, e)
            raise EventLogUnavailable(
                f"Cannot list learning events for {scope_kind.value} {scope_id}", e
            ) from e

        return [
            LearningEvent(
                owner_id=row.employee_id,
                activity_type=row.activity_type,
                occurred_on=row.occurred_on,
                duration_minutes=row.duration_minutes,
                tags=frozenset(row.tags or ()),
            )
            for row in rows
        ]


class SQLMembershipResolver(MembershipResolver):
    """Membership resolver backed by the ``employees`` and ``teams`` tables.

    The deployment serves a single organization, so ``teams_of`` lists
    every team regardless of the org id.
    """

    def __init__(self, session_factory: SessionFactory = get_session) -> None:
        self._session_factory = session_factory

    async def members_of(self, team_id: str) -> list[str]:
        stmt = select(Employee.id).order_by(Employee.id)
        if team_id == UNASSIGNED_TEAM_ID:
            stmt = stmt.where(Employee.team_id.is_(None))
        else:
            stmt = stmt.where(Employee.team_id == team_id)
        return list(await self._scalars(stmt))

    async def teams_of(self, org_id: str) -> list[str]:
        return list(await self._scalars(select(Team.id).order_by(Team.id)))

    async def team_of(self, employee_id: str) -> str | None:
        rows = await self._scalars(select(Employee.team_id).where(Employee.id == employee_id))
        return rows[0] if rows else None

    async def employee_exists(self, employee_id: str) -> bool:
        return bool(await self._scalars(select(Employee.id).where(Employee.id == employee_id)))

    async def team_exists(self, team_id: str) -> bool:
        return bool(await self._scalars(select(Team.id).where(Team.id == team_id)))

    async def display_names(self, kind: ScopeKind, ids: Iterable[str]) -> dict[str, str]:
        wanted = set(ids)
        if not wanted:
            return {}

        names: dict[str, str] = {}
        if kind is ScopeKind.TEAM and UNASSIGNED_TEAM_ID in wanted:
            names[UNASSIGNED_TEAM_ID] = UNASSIGNED_TEAM_NAME
            wanted.discard(UNASSIGNED_TEAM_ID)

        model = Team if kind is ScopeKind.TEAM else Employee
        stmt = select(model.id, model.name).where(model.id.in_(wanted))
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                names.update({row.id: row.name for row in result.all()})
        except (DatabaseError, SQLAlchemyError) as e:
            raise EventLogUnavailable("Cannot resolve display names", e) from e
        return names

    async def _scalars(self, stmt) -> list:
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                return list(result.scalars().all())
        except (DatabaseError, SQLAlchemyError) as e:
            logger.error("Membership lookup failed: %s", e)
            raise EventLogUnavailable("Cannot resolve team membership", e) from e
