# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Learning streak calculation.

A streak is a run of consecutive calendar days with at least one learning.
The current streak is still alive when its last day is today or yesterday,
so an employee who learned yesterday but not yet today keeps their streak.
"""

from collections.abc import Iterable
from datetime import date, timedelta
from decimal import Decimal

from src.domains.stats.models import ActivityDateBucket, StreakState, round_half_up

_ONE_DAY = timedelta(days=1)


def calculate_streaks(
    buckets: Iterable[ActivityDateBucket],
    as_of: date,
    total_minutes: int = 0,
    total_learnings: int = 0,
) -> StreakState:
    """Calculate current and longest streaks plus average session length.

    Args:
        buckets: Per-day buckets. Order and duplicates are tolerated.
        as_of: Reference "today". Dates after it are ignored.
        total_minutes: Minutes used for the session average.
        total_learnings: Learnings used for the session average.

    Returns:
        StreakState with current_streak <= longest_streak.
    """
    dates = sorted({bucket.date for bucket in buckets if bucket.date <= as_of})

    longest = 0
    run = 0
    previous: date | None = None
    for day in dates:
        run = run + 1 if previous is not None and day - previous == _ONE_DAY else 1
        longest = max(longest, run)
        previous = day

    # run now holds the streak ending at the latest active day
    current = run if previous is not None and as_of - previous <= _ONE_DAY else 0

    return StreakState(
        current_streak=current,
        longest_streak=longest,
        avg_session_minutes=average_session_minutes(total_minutes, total_learnings),
    )


def average_session_minutes(total_minutes: int, total_learnings: int) -> float:
    """Average minutes per learning, one decimal; 0.0 with no learnings."""
    if total_learnings <= 0:
        return 0.0
    return round_half_up(Decimal(total_minutes) / Decimal(total_learnings), 1)
