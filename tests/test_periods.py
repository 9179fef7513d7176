"""
Tests for reporting period helpers.
"""

from datetime import datetime, timezone

from app.analytics.periods import (
    AnalyticsTimePeriod,
    DateRange,
    generate_periods,
    range_for_period,
    today_range,
)


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


def test_today_range_is_midnight_to_midnight():
    start, end = today_range(now=utc(2026, 4, 10, 15, 30))

    assert start == utc(2026, 4, 10)
    assert end == utc(2026, 4, 11)


def test_month_range_clamps_short_months():
    start, end = range_for_period(AnalyticsTimePeriod.MONTH, now=utc(2026, 3, 31, 9))

    assert start == utc(2026, 2, 28, 9)
    assert end == utc(2026, 3, 31, 9)


def test_custom_range_passes_through():
    custom = DateRange(utc(2026, 1, 1), utc(2026, 1, 5))

    assert range_for_period(AnalyticsTimePeriod.CUSTOM, custom) == custom


def test_daily_buckets():
    buckets = generate_periods(utc(2026, 1, 1), utc(2026, 1, 4), AnalyticsTimePeriod.DAY)

    assert [b.label for b in buckets] == ["2026-01-01", "2026-01-02", "2026-01-03"]
    assert buckets[-1].end == utc(2026, 1, 4)


def test_last_bucket_is_truncated():
    buckets = generate_periods(utc(2026, 1, 1), utc(2026, 2, 15), AnalyticsTimePeriod.MONTH)

    assert [b.label for b in buckets] == ["Jan 2026", "Feb 2026"]
    assert buckets[-1].start == utc(2026, 2, 1)
    assert buckets[-1].end == utc(2026, 2, 15)


def test_week_and_quarter_labels():
    weeks = generate_periods(utc(2026, 1, 1), utc(2026, 1, 8), AnalyticsTimePeriod.WEEK)
    quarters = generate_periods(utc(2026, 1, 1), utc(2026, 7, 1), AnalyticsTimePeriod.QUARTER)

    assert weeks[0].label == "2026-01-01 - 2026-01-07"
    assert [q.label for q in quarters] == ["Q1 2026", "Q2 2026"]


def test_empty_range_has_no_buckets():
    assert generate_periods(utc(2026, 1, 1), utc(2026, 1, 1), AnalyticsTimePeriod.DAY) == []
