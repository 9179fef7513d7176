"""Analytics domain: event types, filters, periods and pure aggregations."""

from app.analytics.events import (
    EventCategory,
    DeviceType,
    BookingStep,
    parse_event,
    extract_metadata,
)
from app.analytics.filters import AnalyticsFilter, Pagination
from app.analytics.periods import AnalyticsTimePeriod

__all__ = [
    "EventCategory",
    "DeviceType",
    "BookingStep",
    "parse_event",
    "extract_metadata",
    "AnalyticsFilter",
    "Pagination",
    "AnalyticsTimePeriod",
]
