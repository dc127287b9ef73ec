"""
Per-day bucketing of dated events for progress charts.

Timestamps are truncated to their UTC calendar day (``YYYY-MM-DD``); naive
datetimes are taken to be UTC already. Buckets are emitted in ascending day
order. Days without events are not filled in.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from datetime import UTC, date, datetime, timedelta

from .models import DailyActivity, DailyValue, DateRange, TimedScore


def day_key(timestamp: datetime | date) -> str:
    """Return the UTC calendar day of ``timestamp`` as ``YYYY-MM-DD``."""
    if isinstance(timestamp, datetime):
        if timestamp.tzinfo is not None:
            timestamp = timestamp.astimezone(UTC)
        return timestamp.date().isoformat()
    return timestamp.isoformat()


def aggregate_by_day(points: Iterable[TimedScore]) -> list[DailyValue]:
    """
    Sum point values per day.

    Example:
        >>> aggregate_by_day([TimedScore(datetime(2024, 3, 1, 9), 1),
        ...                   TimedScore(datetime(2024, 3, 1, 17), 2)])
        [DailyValue(date='2024-03-01', value=3.0)]
    """
    totals: dict[str, float] = defaultdict(float)
    for point in points:
        totals[day_key(point.timestamp)] += point.value

    # Fixed-width keys, so string order is chronological order.
    return [DailyValue(date=day, value=totals[day]) for day in sorted(totals)]


def merge_by_day(
    first: Iterable[TimedScore], second: Iterable[TimedScore]
) -> list[DailyActivity]:
    """
    Aggregate two independently keyed series onto a shared day axis.

    Every day present in either input appears once; the metric missing on that
    day is reported as zero.
    """
    by_day_a = {row.date: row.value for row in aggregate_by_day(first)}
    by_day_b = {row.date: row.value for row in aggregate_by_day(second)}

    return [
        DailyActivity(date=day, count_a=by_day_a.get(day, 0), count_b=by_day_b.get(day, 0))
        for day in sorted(by_day_a.keys() | by_day_b.keys())
    ]


def trailing_window(now: datetime, days: int) -> DateRange:
    """Window of ``days`` days ending at ``now`` (both bounds inclusive)."""
    if days < 0:
        raise ValueError("Window length must not be negative")
    return DateRange(start=now - timedelta(days=days), end=now)

