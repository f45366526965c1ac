# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Learning statistics API endpoints.

This module provides endpoints for learning statistics:
- GET /me - Statistics of the current user
- GET /employees/{employee_id} - Statistics of one employee
- GET /teams/{team_id} - Statistics of one team
- GET /org - Organization-wide statistics (admins)
- DELETE /projections/{scope_kind}/{scope_id} - Drop stored statistics (admins)

Every endpoint returns the stored all-time projection by default. With
``precomputed=false`` the statistics are computed on the fly over the
last ``days`` days.

Example:
    GET /api/v1/stats/me?precomputed=false&days=7
"""

import logging
from abc import ABC, abstractmethod
from typing import Annotated, NoReturn

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from src.api.dependencies import get_membership_resolver, get_stats_service, require_auth
from src.api.middleware.auth import CurrentUser
from src.domains.stats import (
    EventLogUnavailable,
    MembershipResolver,
    ScopeKind,
    ScopeNotFound,
    StatsService,
)
from src.infrastructure.database.connection import DatabaseError

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================================================
# Access Policy
# ============================================================================


class AccessPolicy(ABC):
    """Decides whether a user may view a statistics scope."""

    @abstractmethod
    async def can_view(self, scope_kind: ScopeKind, scope_id: str, requester: CurrentUser) -> bool:
        """Check whether the requester may view the scope."""
        ...


class RoleAccessPolicy(AccessPolicy):
    """Role-based access to statistics.

    - org_admin: every scope.
    - manager: their team and its members.
    - any user: themselves and their own team.
    """

    def __init__(self, membership: MembershipResolver) -> None:
        self._membership = membership

    async def can_view(self, scope_kind: ScopeKind, scope_id: str, requester: CurrentUser) -> bool:
        if requester.is_org_admin:
            return True

        if scope_kind is ScopeKind.EMPLOYEE:
            if scope_id == requester.id:
                return True
            if requester.is_manager and requester.team_id:
                return await self._membership.team_of(scope_id) == requester.team_id
            return False

        if scope_kind is ScopeKind.TEAM:
            return requester.team_id is not None and scope_id == requester.team_id

        return False


def get_access_policy(
    membership: MembershipResolver = Depends(get_membership_resolver),
) -> AccessPolicy:
    """Get the access policy for statistics endpoints."""
    return RoleAccessPolicy(membership)


# ============================================================================
# Response Models
# ============================================================================


class DailyActivity(BaseModel):
    """Learning activity on one day."""

    date: str = Field(description="Calendar date (YYYY-MM-DD)")
    count: int = Field(description="Learnings on this day")
    hours: float = Field(description="Hours on this day")


class TagCount(BaseModel):
    """Usage count of one tag."""

    tag: str = Field(description="Tag")
    count: int = Field(description="Learnings with this tag")


class RankedItem(BaseModel):
    """One row of a ranking."""

    uid: str = Field(description="Employee or team ID")
    name: str = Field(description="Display name")
    count: int = Field(description="Total learnings")
    hours: float = Field(description="Total hours")


class StatsResponse(BaseModel):
    """Fields shared by all statistics responses."""

    scope: str = Field(description="Scope kind: employee, team or org")
    scope_id: str = Field(description="Scope ID")
    total_learnings: int = Field(description="Total learnings")
    total_hours: float = Field(description="Total hours")
    learnings_by_type: dict[str, int] = Field(description="Learnings per activity type")
    hours_by_type: dict[str, float] = Field(description="Hours per activity type")
    learnings_by_date: list[DailyActivity] = Field(description="Daily activity")
    top_tags: list[TagCount] = Field(description="Most used tags")
    last_learning_date: str | None = Field(description="Most recent active day")
    window_days: int | None = Field(description="Window in days, null for all-time stats")
    as_of: str = Field(description="Reference date")
    computed_at: str = Field(description="Computation timestamp")


class EmployeeStatsResponse(StatsResponse):
    """Statistics of one employee."""

    current_streak: int = Field(description="Current streak in days")
    longest_streak: int = Field(description="Longest streak in days")
    avg_session_minutes: float = Field(description="Average minutes per learning")


class TeamStatsResponse(EmployeeStatsResponse):
    """Statistics of one team."""

    active_learners: int = Field(description="Members with at least one learning")
    top_learners: list[RankedItem] = Field(description="Top learners in the team")


class OrgStatsResponse(StatsResponse):
    """Organization-wide statistics."""

    total_active_employees: int = Field(description="Employees with at least one learning")
    total_active_teams: int = Field(description="Teams with at least one learning")
    top_teams: list[RankedItem] = Field(description="Top teams")
    top_learners: list[RankedItem] = Field(description="Top learners")


# ============================================================================
# Helpers
# ============================================================================

PrecomputedQuery = Annotated[
    bool, Query(description="Return stored all-time statistics instead of a window")
]
DaysQuery = Annotated[
    int | None, Query(ge=1, le=365, description="Window in days for on-the-fly statistics")
]


async def _ensure_can_view(
    policy: AccessPolicy,
    scope_kind: ScopeKind,
    scope_id: str,
    current_user: CurrentUser,
) -> None:
    if not await policy.can_view(scope_kind, scope_id, current_user):
        logger.info(
            "Denied %s stats %s to user %s", scope_kind.value, scope_id, current_user.id
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to view these statistics",
        )


def _raise_for(error: Exception) -> NoReturn:
    """Map engine errors to HTTP errors."""
    if isinstance(error, ScopeNotFound):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=error.message,
        ) from error

    if isinstance(error, ValueError):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(error),
        ) from error

    logger.error("Statistics unavailable: %s", error)
    raise HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Statistics are temporarily unavailable",
    ) from error


# ============================================================================
# Endpoints
# ============================================================================


@router.get(
    "/me",
    response_model=EmployeeStatsResponse,
    summary="Get my statistics",
    description="Get learning statistics for the current user.",
)
async def get_my_stats(
    precomputed: PrecomputedQuery = True,
    days: DaysQuery = None,
    current_user: CurrentUser = Depends(require_auth),
    service: StatsService = Depends(get_stats_service),
) -> EmployeeStatsResponse:
    """Get statistics for the current user."""
    try:
        stats = await service.get_employee_stats(current_user.id, precomputed, days)
    except (ScopeNotFound, EventLogUnavailable, DatabaseError, ValueError) as e:
        _raise_for(e)

    return EmployeeStatsResponse(**stats.to_dashboard())


@router.get(
    "/employees/{employee_id}",
    response_model=EmployeeStatsResponse,
    summary="Get employee statistics",
    description="Get learning statistics for one employee.",
)
async def get_employee_stats(
    employee_id: str,
    precomputed: PrecomputedQuery = True,
    days: DaysQuery = None,
    current_user: CurrentUser = Depends(require_auth),
    service: StatsService = Depends(get_stats_service),
    policy: AccessPolicy = Depends(get_access_policy),
) -> EmployeeStatsResponse:
    """Get statistics for one employee.

    Raises:
        HTTPException: 403 if not allowed, 404 if the employee does not
            exist, 503 if statistics cannot be computed.
    """
    try:
        await _ensure_can_view(policy, ScopeKind.EMPLOYEE, employee_id, current_user)
        stats = await service.get_employee_stats(employee_id, precomputed, days)
    except (ScopeNotFound, EventLogUnavailable, DatabaseError, ValueError) as e:
        _raise_for(e)

    return EmployeeStatsResponse(**stats.to_dashboard())


@router.get(
    "/teams/{team_id}",
    response_model=TeamStatsResponse,
    summary="Get team statistics",
    description="Get learning statistics for one team, rolled up from its members.",
)
async def get_team_stats(
    team_id: str,
    precomputed: PrecomputedQuery = True,
    days: DaysQuery = None,
    current_user: CurrentUser = Depends(require_auth),
    service: StatsService = Depends(get_stats_service),
    policy: AccessPolicy = Depends(get_access_policy),
) -> TeamStatsResponse:
    """Get statistics for one team.

    Raises:
        HTTPException: 403 if not allowed, 404 if the team does not
            exist, 503 if statistics cannot be computed.
    """
    await _ensure_can_view(policy, ScopeKind.TEAM, team_id, current_user)

    try:
        stats = await service.get_team_stats(team_id, precomputed, days)
    except (ScopeNotFound, EventLogUnavailable, DatabaseError, ValueError) as e:
        _raise_for(e)

    return TeamStatsResponse(**stats.to_dashboard())


@router.get(
    "/org",
    response_model=OrgStatsResponse,
    summary="Get organization statistics",
    description="Get organization-wide learning statistics.",
)
async def get_org_stats(
    precomputed: PrecomputedQuery = True,
    days: DaysQuery = None,
    current_user: CurrentUser = Depends(require_auth),
    service: StatsService = Depends(get_stats_service),
    policy: AccessPolicy = Depends(get_access_policy),
) -> OrgStatsResponse:
    """Get organization-wide statistics.

    Raises:
        HTTPException: 403 unless the user is an org admin, 503 if
            statistics cannot be computed.
    """
    org_id = service.settings.org_id
    await _ensure_can_view(policy, ScopeKind.ORG, org_id, current_user)

    try:
        stats = await service.get_org_stats(precomputed, days)
    except (EventLogUnavailable, DatabaseError, ValueError) as e:
        _raise_for(e)

    return OrgStatsResponse(**stats.to_dashboard())


@router.delete(
    "/projections/{scope_kind}/{scope_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Invalidate stored statistics",
    description="Drop a stored projection so the next read recomputes it.",
)
async def invalidate_projection(
    scope_kind: ScopeKind,
    scope_id: str,
    current_user: CurrentUser = Depends(require_auth),
    service: StatsService = Depends(get_stats_service),
) -> None:
    """Drop a stored projection, e.g. a team's after members moved.

    Raises:
        HTTPException: 403 unless the user is an org admin, 503 if the
            store cannot be reached.
    """
    if not current_user.is_org_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only organization admins can invalidate statistics",
        )

    try:
        await service.invalidate(scope_kind, scope_id)
    except DatabaseError as e:
        _raise_for(e)
