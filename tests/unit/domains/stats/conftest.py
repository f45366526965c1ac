# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Shared fixtures for statistics engine tests.

Provides in-memory implementations of the engine's collaborators:
- InMemoryProjectionStore (codec round trip on every save/load)
- InMemoryEventLog
- InMemoryMembership
"""

import asyncio
from collections.abc import Iterable
from datetime import date

import pytest

from src.core.config import StatsSettings
from src.domains.stats import (
    UNASSIGNED_TEAM_ID,
    EventLog,
    LearningEvent,
    MembershipResolver,
    ProjectionStore,
    ScopeKind,
    StatsProjection,
    StatsService,
)
from src.domains.stats.codec import encode, parse
from src.domains.stats.sources import DateWindow

AS_OF = date(2024, 1, 10)


class InMemoryProjectionStore(ProjectionStore):
    """Dict-backed store that keeps encoded records, like the SQL store."""

    def __init__(self) -> None:
        self.records: dict[tuple[ScopeKind, str], str] = {}
        self.loads = 0
        self.saves = 0

    async def load(self, kind: ScopeKind, scope_id: str) -> StatsProjection | None:
        self.loads += 1
        raw = self.records.get((kind, scope_id))
        return parse(raw) if raw is not None else None

    async def save(self, projection: StatsProjection) -> None:
        self.saves += 1
        self.records[(projection.scope_kind, projection.scope_id)] = encode(projection)

    async def delete(self, kind: ScopeKind, scope_id: str) -> None:
        self.records.pop((kind, scope_id), None)


class InMemoryMembership(MembershipResolver):
    """Membership from a plain employee -> team mapping."""

    def __init__(
        self,
        teams: dict[str, str | None],
        team_ids: Iterable[str] = (),
        names: dict[str, str] | None = None,
    ) -> None:
        self.teams = dict(teams)
        self.team_ids = sorted(set(team_ids) | {t for t in self.teams.values() if t})
        self.names = names or {}

    async def members_of(self, team_id: str) -> list[str]:
        wanted = None if team_id == UNASSIGNED_TEAM_ID else team_id
        return sorted(e for e, t in self.teams.items() if t == wanted)

    async def teams_of(self, org_id: str) -> list[str]:
        return list(self.team_ids)

    async def team_of(self, employee_id: str) -> str | None:
        return self.teams.get(employee_id)

    async def employee_exists(self, employee_id: str) -> bool:
        return employee_id in self.teams

    async def team_exists(self, team_id: str) -> bool:
        return team_id in self.team_ids

    async def display_names(self, kind: ScopeKind, ids: Iterable[str]) -> dict[str, str]:
        return {i: self.names[i] for i in ids if i in self.names}


class InMemoryEventLog(EventLog):
    """Event log over a list, resolving teams through the membership fake."""

    def __init__(self, membership: InMemoryMembership) -> None:
        self.membership = membership
        self.events: list[LearningEvent] = []
        self.calls = 0

    def add(self, owner_id: str, activity_type: str, occurred_on: date, minutes: int = 0, tags=()) -> None:
        self.events.append(
            LearningEvent(
                owner_id=owner_id,
                activity_type=activity_type,
                occurred_on=occurred_on,
                duration_minutes=minutes,
                tags=frozenset(tags),
            )
        )

    async def list_events(
        self,
        scope_id: str,
        scope_kind: ScopeKind,
        window: DateWindow | None = None,
    ) -> list[LearningEvent]:
        self.calls += 1
        await asyncio.sleep(0)
        if scope_kind is ScopeKind.EMPLOYEE:
            events = [e for e in self.events if e.owner_id == scope_id]
        elif scope_kind is ScopeKind.TEAM:
            members = set(await self.membership.members_of(scope_id))
            events = [e for e in self.events if e.owner_id in members]
        else:
            events = list(self.events)

        if window is not None:
            start, end = window
            events = [e for e in events if start <= e.occurred_on <= end]
        return events


@pytest.fixture
def membership() -> InMemoryMembership:
    """Two teams plus one employee without a team."""
    return InMemoryMembership(
        teams={
            "alice": "platform",
            "bob": "platform",
            "carol": "data",
            "dave": None,
        },
        team_ids=["platform", "data", "design"],
        names={
            "alice": "Alice",
            "bob": "Bob",
            "carol": "Carol",
            "dave": "Dave",
            "platform": "Platform",
            "data": "Data",
            "design": "Design",
        },
    )


@pytest.fixture
def event_log(membership: InMemoryMembership) -> InMemoryEventLog:
    return InMemoryEventLog(membership)


@pytest.fixture
def store() -> InMemoryProjectionStore:
    return InMemoryProjectionStore()


@pytest.fixture
def stats_settings() -> StatsSettings:
    return StatsSettings(timezone="UTC", default_window_days=7, top_n=10, org_id="acme")


@pytest.fixture
def service(
    store: InMemoryProjectionStore,
    event_log: InMemoryEventLog,
    membership: InMemoryMembership,
    stats_settings: StatsSettings,
) -> StatsService:
    """StatsService over the in-memory fakes with a fixed today."""
    return StatsService(
        store=store,
        event_log=event_log,
        membership=membership,
        settings=stats_settings,
        today=lambda: AS_OF,
    )
