# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for activity bucketing."""

from datetime import date

from src.domains.stats.bucketer import bucket_events, filter_window, merge_buckets, sum_counts
from src.domains.stats.models import ActivityDateBucket, LearningEvent


def _event(day: int, activity_type: str = "course", minutes: int = 30, tags=()) -> LearningEvent:
    return LearningEvent(
        owner_id="alice",
        activity_type=activity_type,
        occurred_on=date(2024, 1, day),
        duration_minutes=minutes,
        tags=frozenset(tags),
    )


class TestBucketEvents:
    """Tests for bucket_events."""

    def test_empty(self) -> None:
        buckets = bucket_events([])

        assert buckets.dates == ()
        assert buckets.total_learnings == 0
        assert buckets.total_hours == 0.0
        assert buckets.last_learning_date is None

    def test_groups_by_day_and_type(self) -> None:
        events = [
            _event(2, "video", 60, tags=["python"]),
            _event(1, "course", 15, tags=["python", "sql"]),
            _event(1, "Course", 15),
        ]

        buckets = bucket_events(events)

        assert buckets.dates == (
            ActivityDateBucket(date=date(2024, 1, 1), count=2, minutes=30),
            ActivityDateBucket(date=date(2024, 1, 2), count=1, minutes=60),
        )
        assert buckets.learnings_by_type == {"course": 2, "video": 1}
        assert buckets.minutes_by_type == {"course": 30, "video": 60}
        assert buckets.hours_by_type == {"course": 0.5, "video": 1.0}
        assert buckets.tag_counts == {"python": 2, "sql": 1}
        assert buckets.total_learnings == 3
        assert buckets.total_hours == 1.5
        assert buckets.last_learning_date == date(2024, 1, 2)

    def test_unknown_types_collapse_into_other(self) -> None:
        buckets = bucket_events([_event(1, "podcast"), _event(1, "webinar")])

        assert buckets.learnings_by_type == {"other": 2}

    def test_totals_agree_with_breakdowns(self) -> None:
        events = [_event(d, t, m) for d, t, m in [(1, "book", 7), (3, "video", 11), (3, "book", 13)]]

        buckets = bucket_events(events)

        assert sum(b.count for b in buckets.dates) == buckets.total_learnings
        assert sum(b.minutes for b in buckets.dates) == buckets.total_minutes
        assert sum(buckets.learnings_by_type.values()) == buckets.total_learnings
        assert sum(buckets.minutes_by_type.values()) == buckets.total_minutes


class TestFilterWindow:
    """Tests for filter_window."""

    def test_bounds_are_inclusive(self) -> None:
        events = [_event(d) for d in (2, 3, 10, 11)]

        kept = filter_window(events, as_of=date(2024, 1, 10), window_days=7)

        assert [e.occurred_on.day for e in kept] == [3, 10]


class TestMerging:
    """Tests for merge_buckets and sum_counts."""

    def test_merge_sums_same_day(self) -> None:
        merged = merge_buckets(
            [
                [ActivityDateBucket(date=date(2024, 1, 2), count=1, minutes=10)],
                [
                    ActivityDateBucket(date=date(2024, 1, 1), count=2, minutes=5),
                    ActivityDateBucket(date=date(2024, 1, 2), count=3, minutes=20),
                ],
            ]
        )

        assert merged == (
            ActivityDateBucket(date=date(2024, 1, 1), count=2, minutes=5),
            ActivityDateBucket(date=date(2024, 1, 2), count=4, minutes=30),
        )

    def test_sum_counts_unions_keys(self) -> None:
        assert sum_counts([{"a": 1}, {"a": 2, "b": 1}, {}]) == {"a": 3, "b": 1}
