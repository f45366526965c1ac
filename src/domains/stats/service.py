# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Learning statistics service.

StatsService answers statistics reads for employees, teams and the org in
two modes:

- Precomputed (default): return the stored all-time projection. When none
  is stored, or the stored record cannot be parsed, compute it from the
  full event history, save it and return it (get-or-create).
- On the fly: compute over a trailing window straight from the event log.
  The store is never touched.

It also owns the recomputation policy: a new learning event recomputes the
owner's employee projection, their team's and the org's, in that order.

Usage:
    from src.domains.stats import StatsService

    service = StatsService(
        store=SQLProjectionStore(),
        event_log=SQLEventLog(),
        membership=SQLMembershipResolver(),
    )

    stats = await service.get_employee_stats(employee_id)
    recent = await service.get_team_stats(team_id, precomputed=False, window_days=7)

    # After a learning event was recorded
    await service.recompute_for_owner(employee_id)
"""

import asyncio
import logging
from collections import defaultdict
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import date, datetime

from src.core.config import StatsSettings, get_settings
from src.domains.stats.exceptions import MalformedProjection, ScopeNotFound, StoreWriteFailed
from src.domains.stats.models import (
    UNASSIGNED_TEAM_ID,
    EmployeeStats,
    LearningEvent,
    OrgStats,
    ScopeKind,
    StatsProjection,
    TeamStats,
)
from src.domains.stats.rollup import aggregate_org, aggregate_team, build_employee_stats
from src.domains.stats.sources import DateWindow, EventLog, MembershipResolver
from src.domains.stats.store import ProjectionStore
from src.utils.datetime import today_in, utc_now, window_start

logger = logging.getLogger(__name__)


@dataclass
class _ScopeLock:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0


def _group_by_owner(events: list[LearningEvent]) -> dict[str, list[LearningEvent]]:
    grouped: dict[str, list[LearningEvent]] = defaultdict(list)
    for event in events:
        grouped[event.owner_id].append(event)
    return grouped


class StatsService:
    """Get-or-create resolver and on-the-fly fallback for statistics.

    Computations for the same (kind, scope id) are serialized within the
    process. Across processes the store's whole-record upsert makes
    concurrent saves last-write-wins.

    Attributes:
        settings: Statistics engine settings.
    """

    def __init__(
        self,
        store: ProjectionStore,
        event_log: EventLog,
        membership: MembershipResolver,
        settings: StatsSettings | None = None,
        today: Callable[[], date] | None = None,
    ) -> None:
        """Initialize the stats service.

        Args:
            store: Projection store.
            event_log: Source of learning events.
            membership: Team membership lookups.
            settings: Engine settings (defaults to application settings).
            today: Returns the reference date; defaults to today in the
                configured stats timezone.
        """
        self._store = store
        self._event_log = event_log
        self._membership = membership
        self.settings = settings or get_settings().stats
        self._today = today or (lambda: today_in(self.settings.tzinfo))
        self._locks: dict[tuple[ScopeKind, str], _ScopeLock] = {}

    # =========================================================================
    # Reads
    # =========================================================================

    async def get_employee_stats(
        self,
        employee_id: str,
        precomputed: bool = True,
        window_days: int | None = None,
    ) -> EmployeeStats:
        """Get statistics for one employee.

        Args:
            employee_id: Employee id.
            precomputed: Return the stored all-time projection
                (get-or-create) instead of computing over a window.
            window_days: Trailing window for on-the-fly results; ignored
                when precomputed. Defaults to the configured window.

        Raises:
            ScopeNotFound: If the employee does not exist.
            EventLogUnavailable: If events cannot be listed.
        """
        if not await self._membership.employee_exists(employee_id):
            raise ScopeNotFound(ScopeKind.EMPLOYEE.value, employee_id)

        if precomputed:
            return await self._get_or_create(
                ScopeKind.EMPLOYEE,
                employee_id,
                lambda: self._compute_employee(employee_id, self._today()),
            )

        days = self._window_days(window_days)
        return await self._compute_employee(employee_id, self._today(), days)

    async def get_team_stats(
        self,
        team_id: str,
        precomputed: bool = True,
        window_days: int | None = None,
    ) -> TeamStats:
        """Get statistics for one team, rolled up from its current members.

        ``UNASSIGNED_TEAM_ID`` addresses the employees without a team.

        Raises:
            ScopeNotFound: If the team does not exist.
            EventLogUnavailable: If events cannot be listed.
        """
        if team_id != UNASSIGNED_TEAM_ID and not await self._membership.team_exists(team_id):
            raise ScopeNotFound(ScopeKind.TEAM.value, team_id)

        if precomputed:
            return await self._get_or_create(
                ScopeKind.TEAM,
                team_id,
                lambda: self._compute_team(team_id, self._today()),
            )

        days = self._window_days(window_days)
        return await self._compute_team(team_id, self._today(), days)

    async def get_org_stats(
        self,
        precomputed: bool = True,
        window_days: int | None = None,
    ) -> OrgStats:
        """Get statistics for the whole organization.

        Raises:
            EventLogUnavailable: If events cannot be listed.
        """
        org_id = self.settings.org_id

        if precomputed:
            return await self._get_or_create(
                ScopeKind.ORG,
                org_id,
                lambda: self._compute_org(org_id, self._today()),
            )

        days = self._window_days(window_days)
        return await self._compute_org(org_id, self._today(), days)

    # =========================================================================
    # Recomputation
    # =========================================================================

    async def recompute_for_owner(self, employee_id: str) -> list[StatsProjection]:
        """Recompute every projection a new event of this employee affects.

        Recomputes and saves the employee projection, then their team's
        (or the unassigned pseudo-team's), then the org's.

        Args:
            employee_id: Owner of the new learning event.

        Returns:
            The recomputed projections, in that order.

        Raises:
            ScopeNotFound: If the employee does not exist.
            EventLogUnavailable: If events cannot be listed.
        """
        if not await self._membership.employee_exists(employee_id):
            raise ScopeNotFound(ScopeKind.EMPLOYEE.value, employee_id)

        as_of = self._today()
        team_id = await self._membership.team_of(employee_id) or UNASSIGNED_TEAM_ID
        org_id = self.settings.org_id

        projections = [
            await self._recompute(
                ScopeKind.EMPLOYEE,
                employee_id,
                lambda: self._compute_employee(employee_id, as_of),
            ),
            await self._recompute(
                ScopeKind.TEAM,
                team_id,
                lambda: self._compute_team(team_id, as_of),
            ),
            await self._recompute(
                ScopeKind.ORG,
                org_id,
                lambda: self._compute_org(org_id, as_of),
            ),
        ]

        logger.info(
            "Recomputed stats for employee %s (team=%s, org=%s)", employee_id, team_id, org_id
        )
        return projections

    async def invalidate(self, kind: ScopeKind, scope_id: str) -> None:
        """Drop a stored projection so the next precomputed read rebuilds it."""
        async with self._scope_lock(kind, scope_id):
            await self._store.delete(kind, scope_id)
        logger.info("Invalidated %s projection: %s", kind.value, scope_id)

    # =========================================================================
    # Get-or-create
    # =========================================================================

    @asynccontextmanager
    async def _scope_lock(self, kind: ScopeKind, scope_id: str) -> AsyncIterator[None]:
        """Serialize work on one scope; the lock is dropped once unused."""
        key = (kind, scope_id)
        entry = self._locks.get(key)
        if entry is None:
            entry = self._locks[key] = _ScopeLock()

        entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0:
                del self._locks[key]

    async def _get_or_create(
        self,
        kind: ScopeKind,
        scope_id: str,
        compute: Callable[[], Awaitable[StatsProjection]],
    ) -> StatsProjection:
        async with self._scope_lock(kind, scope_id):
            try:
                stored = await self._store.load(kind, scope_id)
            except MalformedProjection as e:
                logger.warning(
                    "Discarding malformed %s projection %s: %s", kind.value, scope_id, e
                )
                stored = None

            if stored is not None:
                return stored

            logger.info("No stored %s projection for %s, computing", kind.value, scope_id)
            projection = await compute()
            await self._save(projection)
            return projection

    async def _recompute(
        self,
        kind: ScopeKind,
        scope_id: str,
        compute: Callable[[], Awaitable[StatsProjection]],
    ) -> StatsProjection:
        async with self._scope_lock(kind, scope_id):
            projection = await compute()
            await self._save(projection)
            return projection

    async def _save(self, projection: StatsProjection) -> None:
        try:
            await self._store.save(projection)
        except StoreWriteFailed as e:
            logger.error(
                "Failed to store %s projection %s: %s",
                projection.scope_kind.value,
                projection.scope_id,
                e,
                exc_info=True,
            )

    # =========================================================================
    # Computation
    # =========================================================================

    def _window_days(self, window_days: int | None) -> int:
        days = self.settings.default_window_days if window_days is None else window_days
        if not 1 <= days <= self.settings.max_window_days:
            raise ValueError(
                f"window_days must be between 1 and {self.settings.max_window_days}, got {days}"
            )
        return days

    @staticmethod
    def _date_window(as_of: date, window_days: int | None) -> DateWindow | None:
        if window_days is None:
            return None
        return (window_start(as_of, window_days), as_of)

    async def _compute_employee(
        self,
        employee_id: str,
        as_of: date,
        window_days: int | None = None,
    ) -> EmployeeStats:
        events = await self._event_log.list_events(
            employee_id, ScopeKind.EMPLOYEE, self._date_window(as_of, window_days)
        )
        return build_employee_stats(
            employee_id, events, as_of, window_days=window_days, computed_at=utc_now()
        )

    async def _compute_team(
        self,
        team_id: str,
        as_of: date,
        window_days: int | None = None,
    ) -> TeamStats:
        members = await self._membership.members_of(team_id)
        events = await self._event_log.list_events(
            team_id, ScopeKind.TEAM, self._date_window(as_of, window_days)
        )
        names = await self._membership.display_names(ScopeKind.EMPLOYEE, members)
        return self._roll_up_team(
            team_id, members, _group_by_owner(events), names, as_of, window_days
        )

    async def _compute_org(
        self,
        org_id: str,
        as_of: date,
        window_days: int | None = None,
    ) -> OrgStats:
        team_ids = await self._membership.teams_of(org_id)
        members_by_team = {
            team_id: await self._membership.members_of(team_id) for team_id in team_ids
        }
        unassigned = await self._membership.members_of(UNASSIGNED_TEAM_ID)
        if unassigned:
            members_by_team[UNASSIGNED_TEAM_ID] = unassigned

        events = await self._event_log.list_events(
            org_id, ScopeKind.ORG, self._date_window(as_of, window_days)
        )
        events_by_owner = _group_by_owner(events)

        all_members = [member for members in members_by_team.values() for member in members]
        employee_names = await self._membership.display_names(ScopeKind.EMPLOYEE, all_members)
        team_names = await self._membership.display_names(ScopeKind.TEAM, members_by_team)

        now = utc_now()
        team_stats = [
            self._roll_up_team(
                team_id, members, events_by_owner, employee_names, as_of, window_days, now
            )
            for team_id, members in members_by_team.items()
        ]

        return aggregate_org(
            org_id,
            team_stats,
            as_of,
            team_names,
            top_n=self.settings.top_n,
            window_days=window_days,
            computed_at=now,
        )

    def _roll_up_team(
        self,
        team_id: str,
        members: list[str],
        events_by_owner: dict[str, list[LearningEvent]],
        names: dict[str, str],
        as_of: date,
        window_days: int | None,
        computed_at: datetime | None = None,
    ) -> TeamStats:
        computed_at = computed_at or utc_now()
        member_stats = [
            build_employee_stats(
                member,
                events_by_owner.get(member, []),
                as_of,
                window_days=window_days,
                computed_at=computed_at,
            )
            for member in members
        ]
        return aggregate_team(
            team_id,
            member_stats,
            as_of,
            names,
            top_n=self.settings.top_n,
            window_days=window_days,
            computed_at=computed_at,
        )
