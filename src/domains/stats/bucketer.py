# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Activity bucketing.

Turns a list of learning events into per-day buckets and per-type totals.
Event dates are already timezone-normalized, so bucketing groups by
``occurred_on`` as-is.

Usage:
    from src.domains.stats.bucketer import bucket_events, filter_window

    recent = filter_window(events, as_of=today, window_days=30)
    buckets = bucket_events(recent)
"""

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date

from src.domains.stats.models import (
    ActivityDateBucket,
    ActivityType,
    LearningEvent,
    apportion_hours,
    minutes_to_hours,
)
from src.utils.datetime import window_start


@dataclass(frozen=True)
class ActivityBuckets:
    """Bucketed view of a set of learning events.

    Attributes:
        dates: One bucket per active day, ascending.
        learnings_by_type: Event count per normalized activity type.
        minutes_by_type: Minutes per normalized activity type.
        tag_counts: Event count per tag.
        total_learnings: Number of events.
        total_minutes: Sum of durations.
    """

    dates: tuple[ActivityDateBucket, ...] = ()
    learnings_by_type: dict[str, int] = field(default_factory=dict)
    minutes_by_type: dict[str, int] = field(default_factory=dict)
    tag_counts: dict[str, int] = field(default_factory=dict)
    total_learnings: int = 0
    total_minutes: int = 0

    @property
    def total_hours(self) -> float:
        return minutes_to_hours(self.total_minutes)

    @property
    def hours_by_type(self) -> dict[str, float]:
        return apportion_hours(self.minutes_by_type)

    @property
    def last_learning_date(self) -> date | None:
        return self.dates[-1].date if self.dates else None


def bucket_events(events: Iterable[LearningEvent]) -> ActivityBuckets:
    """Group learning events by day and by activity type.

    Args:
        events: Learning events in any order.

    Returns:
        ActivityBuckets whose totals agree with the per-day and per-type
        breakdowns.
    """
    counts_by_date: Counter[date] = Counter()
    minutes_by_date: Counter[date] = Counter()
    learnings_by_type: Counter[str] = Counter()
    minutes_by_type: Counter[str] = Counter()
    tag_counts: Counter[str] = Counter()

    for event in events:
        activity_type = ActivityType.normalize(event.activity_type)
        counts_by_date[event.occurred_on] += 1
        minutes_by_date[event.occurred_on] += event.duration_minutes
        learnings_by_type[activity_type] += 1
        minutes_by_type[activity_type] += event.duration_minutes
        tag_counts.update(event.tags)

    dates = tuple(
        ActivityDateBucket(date=day, count=counts_by_date[day], minutes=minutes_by_date[day])
        for day in sorted(counts_by_date)
    )

    return ActivityBuckets(
        dates=dates,
        learnings_by_type=dict(learnings_by_type),
        minutes_by_type=dict(minutes_by_type),
        tag_counts=dict(tag_counts),
        total_learnings=sum(counts_by_date.values()),
        total_minutes=sum(minutes_by_date.values()),
    )


def filter_window(
    events: Iterable[LearningEvent],
    as_of: date,
    window_days: int,
) -> list[LearningEvent]:
    """Keep events with ``as_of - window_days <= occurred_on <= as_of``."""
    start = window_start(as_of, window_days)
    return [event for event in events if start <= event.occurred_on <= as_of]


def merge_buckets(
    sequences: Iterable[Iterable[ActivityDateBucket]],
) -> tuple[ActivityDateBucket, ...]:
    """Merge several per-day bucket sequences into one.

    Buckets on the same date are summed; the result is ascending.
    """
    counts: Counter[date] = Counter()
    minutes: Counter[date] = Counter()
    for sequence in sequences:
        for bucket in sequence:
            counts[bucket.date] += bucket.count
            minutes[bucket.date] += bucket.minutes

    return tuple(
        ActivityDateBucket(date=day, count=counts[day], minutes=minutes[day])
        for day in sorted(counts)
    )


def sum_counts(maps: Iterable[dict[str, int]]) -> dict[str, int]:
    """Add up count maps key by key (union of keys)."""
    total: Counter[str] = Counter()
    for mapping in maps:
        total.update(mapping)
    return dict(total)
