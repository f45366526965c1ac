# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Projection building and rollup aggregation.

Employee projections are built from events; team projections are rolled
up from member projections, and the org projection from team projections.

Rollup rules:
- Counts, minutes, type maps and tag counts are summed key by key.
- Hours are re-derived from the summed minutes, never summed.
- Activity dates are merged by day, and team streaks are recomputed from
  the merged dates.
- Rankings order by displayed hours, then learnings (both descending),
  then uid.

All functions here are pure.
"""

from collections.abc import Iterable, Sequence
from datetime import date, datetime

from src.domains.stats.bucketer import bucket_events, merge_buckets, sum_counts
from src.domains.stats.models import (
    EmployeeStats,
    LearningEvent,
    OrgStats,
    RankedEntry,
    StatsProjection,
    TeamStats,
)
from src.domains.stats.streaks import calculate_streaks
from src.utils.datetime import utc_now

DEFAULT_TOP_N = 10


def rank_entries(entries: Iterable[RankedEntry], limit: int = DEFAULT_TOP_N) -> tuple[RankedEntry, ...]:
    """Rank entries by hours, then learnings, then uid; drop idle entries.

    Hours are the one-decimal values the dashboard shows, so two entries
    that display the same hours are ordered by learnings.

    Args:
        entries: Candidates. Entries without learnings are not ranked.
        limit: Maximum number of entries to keep.

    Returns:
        At most ``limit`` entries, best first.
    """
    active = [entry for entry in entries if entry.total_learnings > 0]
    active.sort(key=lambda entry: (-entry.total_hours, -entry.total_learnings, entry.uid))
    return tuple(active[:limit])


def build_employee_stats(
    employee_id: str,
    events: Iterable[LearningEvent],
    as_of: date,
    window_days: int | None = None,
    computed_at: datetime | None = None,
) -> EmployeeStats:
    """Build an employee projection from that employee's events."""
    buckets = bucket_events(events)
    streak = calculate_streaks(
        buckets.dates,
        as_of,
        total_minutes=buckets.total_minutes,
        total_learnings=buckets.total_learnings,
    )

    return EmployeeStats(
        scope_id=employee_id,
        as_of=as_of,
        computed_at=computed_at or utc_now(),
        total_learnings=buckets.total_learnings,
        total_minutes=buckets.total_minutes,
        learnings_by_type=buckets.learnings_by_type,
        minutes_by_type=buckets.minutes_by_type,
        activity_dates=buckets.dates,
        tag_counts=buckets.tag_counts,
        last_learning_date=buckets.last_learning_date,
        window_days=window_days,
        current_streak=streak.current_streak,
        longest_streak=streak.longest_streak,
        avg_session_minutes=streak.avg_session_minutes,
    )


def _summed_fields(parts: Sequence[StatsProjection]) -> dict:
    activity_dates = merge_buckets(part.activity_dates for part in parts)
    return {
        "total_learnings": sum(part.total_learnings for part in parts),
        "total_minutes": sum(part.total_minutes for part in parts),
        "learnings_by_type": sum_counts(part.learnings_by_type for part in parts),
        "minutes_by_type": sum_counts(part.minutes_by_type for part in parts),
        "activity_dates": activity_dates,
        "tag_counts": sum_counts(part.tag_counts for part in parts),
        "last_learning_date": activity_dates[-1].date if activity_dates else None,
    }


def aggregate_team(
    team_id: str,
    member_stats: Sequence[EmployeeStats],
    as_of: date,
    names: dict[str, str],
    top_n: int = DEFAULT_TOP_N,
    window_days: int | None = None,
    computed_at: datetime | None = None,
) -> TeamStats:
    """Roll member projections up into a team projection.

    Args:
        team_id: Team id.
        member_stats: One projection per current member. An empty team is
            valid and yields all-zero stats.
        as_of: Reference date for the team streak.
        names: Display names by employee id (falls back to the id).
        top_n: Size of the top learners list.
        window_days: Window of the member projections, None for all-time.
        computed_at: Computation timestamp, defaults to now.

    Returns:
        TeamStats whose totals equal the member sums.
    """
    summed = _summed_fields(member_stats)
    streak = calculate_streaks(
        summed["activity_dates"],
        as_of,
        total_minutes=summed["total_minutes"],
        total_learnings=summed["total_learnings"],
    )

    top_learners = rank_entries(
        (
            RankedEntry(
                uid=member.scope_id,
                name=names.get(member.scope_id, member.scope_id),
                total_learnings=member.total_learnings,
                total_minutes=member.total_minutes,
            )
            for member in member_stats
        ),
        top_n,
    )

    return TeamStats(
        scope_id=team_id,
        as_of=as_of,
        computed_at=computed_at or utc_now(),
        window_days=window_days,
        current_streak=streak.current_streak,
        longest_streak=streak.longest_streak,
        avg_session_minutes=streak.avg_session_minutes,
        active_learners=sum(1 for member in member_stats if member.total_learnings > 0),
        top_learners=top_learners,
        **summed,
    )


def aggregate_org(
    org_id: str,
    team_stats: Sequence[TeamStats],
    as_of: date,
    team_names: dict[str, str],
    top_n: int = DEFAULT_TOP_N,
    window_days: int | None = None,
    computed_at: datetime | None = None,
) -> OrgStats:
    """Roll team projections up into the org projection.

    Team membership partitions the employees (employees without a team
    belong to the unassigned pseudo-team), so active employees are the
    sum of team active learners. Each team's top list holds that team's
    best ``top_n`` under the same ordering, which makes the re-ranked
    union the org-wide top ``top_n``.
    """
    summed = _summed_fields(team_stats)

    top_teams = rank_entries(
        (
            RankedEntry(
                uid=team.scope_id,
                name=team_names.get(team.scope_id, team.scope_id),
                total_learnings=team.total_learnings,
                total_minutes=team.total_minutes,
            )
            for team in team_stats
        ),
        top_n,
    )
    top_learners = rank_entries(
        (entry for team in team_stats for entry in team.top_learners),
        top_n,
    )

    return OrgStats(
        scope_id=org_id,
        as_of=as_of,
        computed_at=computed_at or utc_now(),
        window_days=window_days,
        total_active_employees=sum(team.active_learners for team in team_stats),
        total_active_teams=sum(1 for team in team_stats if team.total_learnings > 0),
        top_teams=top_teams,
        top_learners=top_learners,
        **summed,
    )
