# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Learning statistics data model.

A projection is one tagged variant type. StatsProjection carries the fields
every scope shares; EmployeeStats, TeamStats and OrgStats add what is
specific to their scope. All projections are frozen: a recomputation
produces a new object and replaces the stored one as a whole.

Hours are never accumulated directly. Projections store exact minute
totals and derive hours with one-decimal half-up rounding. Per-type hours
are apportioned (largest remainder, in tenths of an hour) so that they
add up exactly to ``total_hours``.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any, ClassVar

from src.utils.datetime import date_range, format_iso, window_start

SCHEMA_VERSION = 1

# Pseudo-team that collects employees without a team in org rollups
UNASSIGNED_TEAM_ID = "unassigned"

TOP_TAGS_LIMIT = 10


class ScopeKind(str, Enum):
    """Kind of entity a projection summarizes."""

    EMPLOYEE = "employee"
    TEAM = "team"
    ORG = "org"


class ActivityType(str, Enum):
    """Known learning activity types.

    The set is open: anything else is accumulated under OTHER.
    """

    COURSE = "course"
    BOOK = "book"
    ARTICLE = "article"
    VIDEO = "video"
    CONFERENCE = "conference"
    PROJECT = "project"
    OTHER = "other"

    @classmethod
    def normalize(cls, value: str | None) -> str:
        """Map a raw activity type to a known type key."""
        if not value:
            return cls.OTHER.value
        candidate = value.strip().lower()
        if candidate in cls._value2member_map_:
            return candidate
        return cls.OTHER.value


# =============================================================================
# Rounding
# =============================================================================


def _tenths_of_hour(minutes: int) -> int:
    # One tenth of an hour is six minutes; +3 rounds half up
    return (minutes + 3) // 6


def minutes_to_hours(minutes: int) -> float:
    """Convert minutes to hours rounded half-up to one decimal."""
    return _tenths_of_hour(minutes) / 10


def round_half_up(value: Decimal | int | float, places: int = 1) -> float:
    """Round half-up to the given number of decimal places."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def apportion_hours(minutes_by_key: dict[str, int]) -> dict[str, float]:
    """Convert per-key minutes to hours that sum exactly to the rounded total.

    Each key gets the floor of its tenths of an hour; the tenths still
    missing from the rounded total go to the keys with the largest
    remainders (ties broken by key). Every value stays within 0.1 of its
    exact value.

    Args:
        minutes_by_key: Minutes per key (e.g. per activity type).

    Returns:
        Hours per key, one decimal.
    """
    total_tenths = _tenths_of_hour(sum(minutes_by_key.values()))
    tenths = {key: minutes // 6 for key, minutes in minutes_by_key.items()}
    missing = total_tenths - sum(tenths.values())

    by_remainder = sorted(
        minutes_by_key,
        key=lambda key: (-(minutes_by_key[key] % 6), key),
    )
    for key in by_remainder[:missing]:
        tenths[key] += 1

    return {key: value / 10 for key, value in tenths.items()}


# =============================================================================
# Events and buckets
# =============================================================================


@dataclass(frozen=True)
class LearningEvent:
    """One learning activity, as read from the event log.

    Attributes:
        owner_id: Employee who logged the activity.
        activity_type: Raw activity type (normalized when bucketing).
        occurred_on: Calendar date, already timezone-normalized.
        duration_minutes: Duration in whole minutes.
        tags: Free-form tags.
    """

    owner_id: str
    activity_type: str
    occurred_on: date
    duration_minutes: int = 0
    tags: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        if self.duration_minutes < 0:
            raise ValueError(f"duration_minutes must be >= 0, got {self.duration_minutes}")


@dataclass(frozen=True)
class ActivityDateBucket:
    """Learning count and minutes for one calendar day."""

    date: date
    count: int
    minutes: int

    @property
    def hours(self) -> float:
        return minutes_to_hours(self.minutes)


@dataclass(frozen=True)
class StreakState:
    """Streak and session-length summary for one scope."""

    current_streak: int = 0
    longest_streak: int = 0
    avg_session_minutes: float = 0.0


@dataclass(frozen=True)
class RankedEntry:
    """One row of a top learners / top teams ranking."""

    uid: str
    name: str
    total_learnings: int
    total_minutes: int

    @property
    def total_hours(self) -> float:
        return minutes_to_hours(self.total_minutes)

    def to_dict(self) -> dict[str, Any]:
        return {
            "uid": self.uid,
            "name": self.name,
            "count": self.total_learnings,
            "hours": self.total_hours,
        }


# =============================================================================
# Projections
# =============================================================================


@dataclass(frozen=True, kw_only=True)
class StatsProjection:
    """Fields shared by every statistics projection.

    Attributes:
        scope_id: Employee id, team id or org id.
        as_of: Reference date the projection was computed for.
        computed_at: When the projection was computed (UTC).
        total_learnings: Number of learning events.
        total_minutes: Sum of event durations.
        learnings_by_type: Event count per activity type.
        minutes_by_type: Minutes per activity type.
        activity_dates: Per-day buckets, ascending, one per active day.
        tag_counts: Event count per tag.
        last_learning_date: Most recent active day, if any.
        window_days: None for all-time projections, else the trailing
            window an on-the-fly result was computed over.
        schema_version: Encoding version of the stored record.
    """

    scope_kind: ClassVar[ScopeKind]

    scope_id: str
    as_of: date
    computed_at: datetime
    total_learnings: int = 0
    total_minutes: int = 0
    learnings_by_type: dict[str, int] = field(default_factory=dict)
    minutes_by_type: dict[str, int] = field(default_factory=dict)
    activity_dates: tuple[ActivityDateBucket, ...] = ()
    tag_counts: dict[str, int] = field(default_factory=dict)
    last_learning_date: date | None = None
    window_days: int | None = None
    schema_version: int = SCHEMA_VERSION

    @property
    def total_hours(self) -> float:
        return minutes_to_hours(self.total_minutes)

    @property
    def hours_by_type(self) -> dict[str, float]:
        return apportion_hours(self.minutes_by_type)

    @property
    def is_precomputed(self) -> bool:
        return self.window_days is None

    def top_tags(self, limit: int = TOP_TAGS_LIMIT) -> list[dict[str, Any]]:
        """Most used tags, by count then name."""
        ranked = sorted(self.tag_counts.items(), key=lambda item: (-item[1], item[0]))
        return [{"tag": tag, "count": count} for tag, count in ranked[:limit]]

    def learnings_by_date(self) -> list[dict[str, Any]]:
        """Daily series for charts.

        All-time projections list active days only. Windowed results list
        every day of the window, with zeros for inactive days.
        """
        if self.window_days is None:
            buckets = self.activity_dates
        else:
            by_date = {bucket.date: bucket for bucket in self.activity_dates}
            buckets = tuple(
                by_date.get(day, ActivityDateBucket(date=day, count=0, minutes=0))
                for day in date_range(window_start(self.as_of, self.window_days), self.as_of)
            )
        return [
            {"date": bucket.date.isoformat(), "count": bucket.count, "hours": bucket.hours}
            for bucket in buckets
        ]

    def to_dashboard(self) -> dict[str, Any]:
        """Convert to the dashboard response shape."""
        return {
            "scope": self.scope_kind.value,
            "scope_id": self.scope_id,
            "total_learnings": self.total_learnings,
            "total_hours": self.total_hours,
            "learnings_by_type": dict(self.learnings_by_type),
            "hours_by_type": self.hours_by_type,
            "learnings_by_date": self.learnings_by_date(),
            "top_tags": self.top_tags(),
            "last_learning_date": (
                self.last_learning_date.isoformat() if self.last_learning_date else None
            ),
            "window_days": self.window_days,
            "as_of": self.as_of.isoformat(),
            "computed_at": format_iso(self.computed_at),
            **self._scope_fields(),
        }

    def _scope_fields(self) -> dict[str, Any]:
        return {}


@dataclass(frozen=True, kw_only=True)
class EmployeeStats(StatsProjection):
    """Projection for one employee."""

    scope_kind: ClassVar[ScopeKind] = ScopeKind.EMPLOYEE

    current_streak: int = 0
    longest_streak: int = 0
    avg_session_minutes: float = 0.0

    @property
    def streak(self) -> StreakState:
        return StreakState(self.current_streak, self.longest_streak, self.avg_session_minutes)

    def _scope_fields(self) -> dict[str, Any]:
        return {
            "current_streak": self.current_streak,
            "longest_streak": self.longest_streak,
            "avg_session_minutes": self.avg_session_minutes,
        }


@dataclass(frozen=True, kw_only=True)
class TeamStats(StatsProjection):
    """Projection for one team, rolled up from its members."""

    scope_kind: ClassVar[ScopeKind] = ScopeKind.TEAM

    current_streak: int = 0
    longest_streak: int = 0
    avg_session_minutes: float = 0.0
    active_learners: int = 0
    top_learners: tuple[RankedEntry, ...] = ()

    @property
    def streak(self) -> StreakState:
        return StreakState(self.current_streak, self.longest_streak, self.avg_session_minutes)

    def _scope_fields(self) -> dict[str, Any]:
        return {
            "current_streak": self.current_streak,
            "longest_streak": self.longest_streak,
            "avg_session_minutes": self.avg_session_minutes,
            "active_learners": self.active_learners,
            "top_learners": [entry.to_dict() for entry in self.top_learners],
        }


@dataclass(frozen=True, kw_only=True)
class OrgStats(StatsProjection):
    """Projection for the whole organization, rolled up from its teams.

    There is no org-level streak.
    """

    scope_kind: ClassVar[ScopeKind] = ScopeKind.ORG

    total_active_employees: int = 0
    total_active_teams: int = 0
    top_teams: tuple[RankedEntry, ...] = ()
    top_learners: tuple[RankedEntry, ...] = ()

    def _scope_fields(self) -> dict[str, Any]:
        return {
            "total_active_employees": self.total_active_employees,
            "total_active_teams": self.total_active_teams,
            "top_teams": [entry.to_dict() for entry in self.top_teams],
            "top_learners": [entry.to_dict() for entry in self.top_learners],
        }


PROJECTION_TYPES: dict[ScopeKind, type[StatsProjection]] = {
    ScopeKind.EMPLOYEE: EmployeeStats,
    ScopeKind.TEAM: TeamStats,
    ScopeKind.ORG: OrgStats,
}
