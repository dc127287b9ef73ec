import random
from datetime import date, datetime, timedelta, timezone

import pytest

from counsel.domain.aggregation import aggregate_by_day, day_key, merge_by_day, trailing_window
from counsel.domain.models import DailyActivity, DailyValue, DateRange, TimedScore


class TestDayKey:
    def test_naive_datetime_is_treated_as_utc(self):
        assert day_key(datetime(2024, 3, 1, 23, 59)) == "2024-03-01"

    def test_aware_datetime_is_converted_to_utc(self):
        eastern = timezone(timedelta(hours=-5))
        assert day_key(datetime(2024, 3, 1, 21, 0, tzinfo=eastern)) == "2024-03-02"

    def test_plain_date(self):
        assert day_key(date(2024, 12, 31)) == "2024-12-31"


class TestAggregateByDay:
    def test_sums_values_per_day_in_ascending_order(self):
        points = [
            TimedScore(datetime(2024, 3, 2, 8), 1),
            TimedScore(datetime(2024, 3, 1, 9), 1),
            TimedScore(datetime(2024, 3, 1, 17), 2),
        ]
        assert aggregate_by_day(points) == [
            DailyValue("2024-03-01", 3.0),
            DailyValue("2024-03-02", 1.0),
        ]

    def test_empty_input(self):
        assert aggregate_by_day([]) == []

    def test_gaps_are_not_filled(self):
        points = [TimedScore(datetime(2024, 1, 1), 1), TimedScore(datetime(2024, 1, 5), 1)]
        assert [row.date for row in aggregate_by_day(points)] == ["2024-01-01", "2024-01-05"]

    def test_input_order_does_not_matter(self):
        start = datetime(2024, 1, 1)
        points = [TimedScore(start + timedelta(hours=7 * i), i % 4) for i in range(40)]
        expected = aggregate_by_day(points)

        shuffled = points[:]
        random.Random(7).shuffle(shuffled)
        assert aggregate_by_day(shuffled) == expected

    def test_totals_are_preserved(self):
        points = [TimedScore(datetime(2024, 2, d % 5 + 1, d % 24), d) for d in range(30)]
        assert sum(row.value for row in aggregate_by_day(points)) == sum(range(30))

    def test_reaggregating_buckets_is_a_no_op(self):
        points = [TimedScore(datetime(2024, 5, d % 3 + 1, 12), 2) for d in range(9)]
        once = aggregate_by_day(points)
        again = aggregate_by_day(TimedScore(date.fromisoformat(row.date), row.value) for row in once)
        assert again == once


class TestMergeByDay:
    def test_union_of_days_with_zero_defaults(self):
        sessions = [TimedScore(datetime(2024, 3, 1, 10), 1), TimedScore(datetime(2024, 3, 1, 15), 1)]
        tasks = [TimedScore(datetime(2024, 3, 2, 9), 1)]

        assert merge_by_day(sessions, tasks) == [
            DailyActivity("2024-03-01", 2, 0),
            DailyActivity("2024-03-02", 0, 1),
        ]

    def test_each_day_appears_once(self):
        a = [TimedScore(datetime(2024, 3, d), 1) for d in (1, 2, 3)]
        b = [TimedScore(datetime(2024, 3, d), 1) for d in (2, 3, 4)]
        days = [row.date for row in merge_by_day(a, b)]
        assert days == sorted(set(days))
        assert len(days) == 4

    def test_both_empty(self):
        assert merge_by_day([], []) == []


class TestTrailingWindow:
    def test_window_ends_at_now(self):
        now = datetime(2024, 6, 30, 12)
        assert trailing_window(now, 90) == DateRange(start=datetime(2024, 4, 1, 12), end=now)

    def test_zero_days(self):
        now = datetime(2024, 6, 30)
        assert trailing_window(now, 0) == DateRange(start=now, end=now)

    def test_negative_days_rejected(self):
        with pytest.raises(ValueError):
            trailing_window(datetime(2024, 6, 30), -1)
