# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Date and datetime utilities for Learnboard.

Design Decisions:
-----------------
1. Timestamps (computed_at, recorded_at) are timezone-aware UTC.
2. Learning events carry a calendar date that was normalized once, when
   the event was recorded. Statistics never convert timezones again.
3. "Today" for streak purposes is resolved in the configured stats timezone.

Usage:
------
    from src.utils.datetime import utc_now, today_in

    computed_at = utc_now()
    as_of = today_in(settings.stats.tzinfo)
"""

from collections.abc import Iterator
from datetime import date, datetime, timedelta, timezone, tzinfo


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime.

    Returns:
        Timezone-aware datetime representing current UTC time.
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Ensure a datetime is timezone-aware UTC.

    Args:
        dt: A datetime object (naive or aware) or None.

    Returns:
        Timezone-aware UTC datetime or None. Naive values are assumed UTC.
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


def today_in(tz: tzinfo) -> date:
    """Get the current calendar date in the given timezone.

    Args:
        tz: Timezone to resolve the date in.

    Returns:
        Today's date as seen from ``tz``.
    """
    return datetime.now(tz).date()


def window_start(as_of: date, window_days: int) -> date:
    """Get the first date included in a trailing window.

    The window keeps events with ``occurred_on >= as_of - window_days``.

    Args:
        as_of: Reference date (inclusive upper bound).
        window_days: Window length in days.

    Returns:
        The inclusive lower bound of the window.
    """
    return as_of - timedelta(days=window_days)


def date_range(start: date, end: date) -> Iterator[date]:
    """Iterate calendar dates from start to end, both inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def format_iso(dt: datetime) -> str:
    """Format a datetime as ISO 8601 in UTC.

    Args:
        dt: Datetime to format (naive values are assumed UTC).

    Returns:
        ISO 8601 string with offset, e.g. "2024-01-02T10:30:00+00:00".
    """
    return ensure_utc(dt).isoformat()  # type: ignore[union-attr]
