"""Reporting periods and date-range helpers."""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import List, NamedTuple, Optional


class AnalyticsTimePeriod(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"
    CUSTOM = "custom"


class DateRange(NamedTuple):
    start: datetime
    end: datetime


class PeriodBucket(NamedTuple):
    start: datetime
    end: datetime
    label: str


def _add_months(value: datetime, months: int) -> datetime:
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    # Clamp day for short months (e.g. Jan 31 + 1 month)
    day = value.day
    while True:
        try:
            return value.replace(year=year, month=month, day=day)
        except ValueError:
            day -= 1


def today_range(now: Optional[datetime] = None) -> DateRange:
    """[00:00 today, 00:00 tomorrow) in UTC."""
    now = now or datetime.now(timezone.utc)
    start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return DateRange(start, start + timedelta(days=1))


def range_for_period(
    period: AnalyticsTimePeriod,
    custom: Optional[DateRange] = None,
    now: Optional[datetime] = None,
) -> DateRange:
    """Range ending now that covers the given period."""
    if period == AnalyticsTimePeriod.CUSTOM and custom:
        return custom

    end = now or datetime.now(timezone.utc)

    if period == AnalyticsTimePeriod.WEEK:
        start = end - timedelta(days=7)
    elif period == AnalyticsTimePeriod.MONTH:
        start = _add_months(end, -1)
    elif period == AnalyticsTimePeriod.QUARTER:
        start = _add_months(end, -3)
    elif period == AnalyticsTimePeriod.YEAR:
        start = _add_months(end, -12)
    else:
        start = end.replace(hour=0, minute=0, second=0, microsecond=0)

    return DateRange(start, end)


def _bucket_end(start: datetime, period: AnalyticsTimePeriod) -> datetime:
    if period == AnalyticsTimePeriod.WEEK:
        return start + timedelta(days=7)
    if period == AnalyticsTimePeriod.MONTH:
        return _add_months(start, 1)
    if period == AnalyticsTimePeriod.QUARTER:
        return _add_months(start, 3)
    if period == AnalyticsTimePeriod.YEAR:
        return _add_months(start, 12)
    return start + timedelta(days=1)


def _bucket_label(start: datetime, end: datetime, period: AnalyticsTimePeriod) -> str:
    if period == AnalyticsTimePeriod.WEEK:
        last_day = end - timedelta(microseconds=1)
        return f"{start.date().isoformat()} - {last_day.date().isoformat()}"
    if period == AnalyticsTimePeriod.MONTH:
        return start.strftime("%b %Y")
    if period == AnalyticsTimePeriod.QUARTER:
        return f"Q{(start.month - 1) // 3 + 1} {start.year}"
    if period == AnalyticsTimePeriod.YEAR:
        return str(start.year)
    return start.date().isoformat()


def generate_periods(
    start: datetime,
    end: datetime,
    period: AnalyticsTimePeriod,
) -> List[PeriodBucket]:
    """
    Split [start, end) into consecutive buckets.
    The last bucket is truncated at `end`.
    """
    buckets: List[PeriodBucket] = []
    current = start
    while current < end:
        bucket_end = _bucket_end(current, period)
        label = _bucket_label(current, bucket_end, period)
        if bucket_end > end:
            bucket_end = end
        buckets.append(PeriodBucket(current, bucket_end, label))
        current = bucket_end
    return buckets
