# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Learning statistics domain.

This module turns the learning event log into dashboard statistics:
- Activity bucketing by day and activity type
- Current and longest learning streaks
- Employee, team and org projections with ranked top lists
- Stored precomputed projections with get-or-create reads
- On-the-fly statistics over a trailing window

Integration with Background Tasks:
- New learning events trigger recompute_learning_stats, which recomputes
  the owner's employee, team and org projections

Usage:
    from src.domains.stats import StatsService, SQLProjectionStore

    service = StatsService(
        store=SQLProjectionStore(),
        event_log=SQLEventLog(),
        membership=SQLMembershipResolver(),
    )
    stats = await service.get_team_stats(team_id)
    dashboard = stats.to_dashboard()
"""

from src.domains.stats.bucketer import ActivityBuckets, bucket_events, filter_window, merge_buckets
from src.domains.stats.codec import encode, parse
from src.domains.stats.exceptions import (
    EventLogUnavailable,
    MalformedProjection,
    ScopeNotFound,
    StatsError,
    StoreWriteFailed,
)
from src.domains.stats.models import (
    UNASSIGNED_TEAM_ID,
    ActivityDateBucket,
    ActivityType,
    EmployeeStats,
    LearningEvent,
    OrgStats,
    RankedEntry,
    ScopeKind,
    StatsProjection,
    StreakState,
    TeamStats,
)
from src.domains.stats.rollup import aggregate_org, aggregate_team, build_employee_stats, rank_entries
from src.domains.stats.service import StatsService
from src.domains.stats.sources import (
    EventLog,
    MembershipResolver,
    SQLEventLog,
    SQLMembershipResolver,
)
from src.domains.stats.store import ProjectionStore, SQLProjectionStore
from src.domains.stats.streaks import calculate_streaks

__all__ = [
    # Models
    "ActivityDateBucket",
    "ActivityType",
    "EmployeeStats",
    "LearningEvent",
    "OrgStats",
    "RankedEntry",
    "ScopeKind",
    "StatsProjection",
    "StreakState",
    "TeamStats",
    "UNASSIGNED_TEAM_ID",
    # Computation
    "ActivityBuckets",
    "aggregate_org",
    "aggregate_team",
    "bucket_events",
    "build_employee_stats",
    "calculate_streaks",
    "filter_window",
    "merge_buckets",
    "rank_entries",
    # Persistence
    "ProjectionStore",
    "SQLProjectionStore",
    "encode",
    "parse",
    # Sources
    "EventLog",
    "MembershipResolver",
    "SQLEventLog",
    "SQLMembershipResolver",
    # Service
    "StatsService",
    # Errors
    "StatsError",
    "ScopeNotFound",
    "MalformedProjection",
    "EventLogUnavailable",
    "StoreWriteFailed",
]
