# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the SQL event log and membership resolver.

These tests mock the database session.
"""

from contextlib import asynccontextmanager
from datetime import date
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import OperationalError

from src.domains.stats.exceptions import EventLogUnavailable
from src.domains.stats.models import UNASSIGNED_TEAM_ID, ScopeKind
from src.domains.stats.sources import SQLEventLog, SQLMembershipResolver
from src.infrastructure.database.connection import DatabaseError


def _session_factory(session: MagicMock):
    @asynccontextmanager
    async def factory():
        yield session

    return factory


def _session_returning(rows=None, scalars=None) -> MagicMock:
    result = MagicMock()
    result.all.return_value = rows or []
    result.scalars.return_value.all.return_value = scalars or []
    session = MagicMock()
    session.execute = AsyncMock(return_value=result)
    return session


def _compiled(session: MagicMock) -> str:
    stmt = session.execute.call_args.args[0]
    return str(stmt.compile(dialect=postgresql.dialect()))


class TestSQLEventLog:
    """Tests for SQLEventLog."""

    @pytest.mark.asyncio
    async def test_maps_rows_to_events(self) -> None:
        rows = [
            SimpleNamespace(
                employee_id="alice",
                activity_type="course",
                occurred_on=date(2024, 1, 1),
                duration_minutes=30,
                tags=["python"],
            ),
            SimpleNamespace(
                employee_id="alice",
                activity_type="book",
                occurred_on=date(2024, 1, 2),
                duration_minutes=10,
                tags=None,
            ),
        ]
        session = _session_returning(rows=rows)
        event_log = SQLEventLog(_session_factory(session))

        events = await event_log.list_events("alice", ScopeKind.EMPLOYEE)

        assert [e.duration_minutes for e in events] == [30, 10]
        assert events[0].tags == frozenset({"python"})
        assert events[1].tags == frozenset()
        assert "learning_events.employee_id = " in _compiled(session)

    @pytest.mark.asyncio
    async def test_team_scope_joins_employees(self) -> None:
        session = _session_returning()
        event_log = SQLEventLog(_session_factory(session))

        await event_log.list_events("platform", ScopeKind.TEAM)

        sql = _compiled(session)
        assert "JOIN employees" in sql
        assert "employees.team_id = " in sql

    @pytest.mark.asyncio
    async def test_unassigned_team_selects_employees_without_team(self) -> None:
        session = _session_returning()
        event_log = SQLEventLog(_session_factory(session))

        await event_log.list_events(UNASSIGNED_TEAM_ID, ScopeKind.TEAM)

        assert "employees.team_id IS NULL" in _compiled(session)

    @pytest.mark.asyncio
    async def test_window_bounds_dates(self) -> None:
        session = _session_returning()
        event_log = SQLEventLog(_session_factory(session))

        await event_log.list_events("acme", ScopeKind.ORG, (date(2024, 1, 1), date(2024, 1, 8)))

        sql = _compiled(session)
        assert "learning_events.occurred_on >= " in sql
        assert "learning_events.occurred_on <= " in sql

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            DatabaseError("Session error"),
            OperationalError("SELECT", {}, Exception("gone")),
        ],
    )
    async def test_failure_raises_event_log_unavailable(self, error: Exception) -> None:
        session = MagicMock()
        session.execute = AsyncMock(side_effect=error)
        event_log = SQLEventLog(_session_factory(session))

        with pytest.raises(EventLogUnavailable):
            await event_log.list_events("alice", ScopeKind.EMPLOYEE)


class TestSQLMembershipResolver:
    """Tests for SQLMembershipResolver."""

    @pytest.mark.asyncio
    async def test_members_of(self) -> None:
        session = _session_returning(scalars=["alice", "bob"])
        resolver = SQLMembershipResolver(_session_factory(session))

        assert await resolver.members_of("platform") == ["alice", "bob"]

    @pytest.mark.asyncio
    async def test_members_of_unassigned(self) -> None:
        session = _session_returning(scalars=["dave"])
        resolver = SQLMembershipResolver(_session_factory(session))

        await resolver.members_of(UNASSIGNED_TEAM_ID)

        assert "employees.team_id IS NULL" in _compiled(session)

    @pytest.mark.asyncio
    async def test_team_of_without_team(self) -> None:
        session = _session_returning(scalars=[None])
        resolver = SQLMembershipResolver(_session_factory(session))

        assert await resolver.team_of("dave") is None

    @pytest.mark.asyncio
    async def test_employee_exists(self) -> None:
        resolver = SQLMembershipResolver(_session_factory(_session_returning(scalars=["alice"])))
        missing = SQLMembershipResolver(_session_factory(_session_returning(scalars=[])))

        assert await resolver.employee_exists("alice") is True
        assert await missing.employee_exists("mallory") is False

    @pytest.mark.asyncio
    async def test_display_names_include_unassigned(self) -> None:
        session = _session_returning(rows=[SimpleNamespace(id="platform", name="Platform")])
        resolver = SQLMembershipResolver(_session_factory(session))

        names = await resolver.display_names(ScopeKind.TEAM, ["platform", UNASSIGNED_TEAM_ID])

        assert names == {"platform": "Platform", UNASSIGNED_TEAM_ID: "Unassigned"}

    @pytest.mark.asyncio
    async def test_display_names_empty(self) -> None:
        session = _session_returning()
        resolver = SQLMembershipResolver(_session_factory(session))

        assert await resolver.display_names(ScopeKind.EMPLOYEE, []) == {}
        session.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_lookup_failure(self) -> None:
        session = MagicMock()
        session.execute = AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("gone")))
        resolver = SQLMembershipResolver(_session_factory(session))

        with pytest.raises(EventLogUnavailable):
            await resolver.teams_of("acme")
