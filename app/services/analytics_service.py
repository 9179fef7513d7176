"""
Analytics Service - event ingestion, querying and dashboard aggregates.

Rows come from AnalyticsRepository; the numbers come from the pure
functions in app.analytics.aggregation. Failures are logged and re-raised
so the API layer can turn them into a 500.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.analytics import aggregation
from app.analytics.events import BaseEvent, BookingStep, EventCategory
from app.analytics.filters import AnalyticsFilter, Pagination
from app.analytics.periods import AnalyticsTimePeriod, generate_periods, today_range
from app.models.analytics_event import AnalyticsEvent
from app.services.analytics_repository import AnalyticsRepository

logger = logging.getLogger(__name__)


class AnalyticsService:
    """Service for analytics ingestion and reporting."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.repository = AnalyticsRepository(db)

    async def store_event(self, event: BaseEvent) -> AnalyticsEvent:
        """Persist one analytics event. No retry on failure."""
        try:
            row = await self.repository.add_event(event)
            logger.debug(f"Stored analytics event {row.category}:{row.action}")
            return row
        except Exception as e:
            logger.error(f"Error storing analytics event: {e}", exc_info=True)
            raise

    async def query_events(self, f: AnalyticsFilter) -> Dict[str, Any]:
        """Filtered, paginated events."""
        try:
            events, total = await self.repository.query_events(f)
        except Exception as e:
            logger.error(f"Error querying analytics events: {e}", exc_info=True)
            raise

        return {
            "events": [event.to_dict() for event in events],
            "pagination": Pagination.build(total, f.page, f.limit).model_dump(),
        }

    async def get_summary(self, start: datetime, end: datetime) -> Dict[str, Any]:
        """Summary statistics for [start, end]."""
        try:
            events = await self.repository.events_between(start, end)
            return aggregation.summarize_events(events)
        except Exception as e:
            logger.error(f"Error getting analytics summary: {e}", exc_info=True)
            raise

    async def get_top_designs(self, limit: int = 10) -> List[Dict[str, Any]]:
        """Best performing gallery designs, with design details when known."""
        try:
            views = await self.repository.gallery_events(views=True)
            interactions = await self.repository.gallery_events(views=False)
            ranked = aggregation.score_designs(views, interactions, limit=limit)

            items = await self.repository.gallery_items([d["design_id"] for d in ranked])
            details = {item.id: item.to_dict() for item in items}

            return [
                {**stats, "details": details.get(stats["design_id"])}
                for stats in ranked
            ]
        except Exception as e:
            logger.error(f"Error getting top designs: {e}", exc_info=True)
            raise

    async def get_booking_funnel(self, start: datetime, end: datetime) -> Dict[str, Any]:
        """Booking funnel for [start, end]."""
        try:
            events = await self.repository.events_between(
                start, end, category=EventCategory.BOOKING
            )
            return aggregation.booking_funnel(events)
        except Exception as e:
            logger.error(f"Error getting booking funnel analytics: {e}", exc_info=True)
            raise

    async def _period_stats(self, start: datetime, end: datetime) -> Dict[str, Any]:
        visitors = await self.repository.count_unique_sessions(start, end)
        page_views = await self.repository.count_events(
            start, end, category=EventCategory.PAGE_VIEW
        )
        bookings = await self.repository.count_events(
            start, end, category=EventCategory.BOOKING, action=BookingStep.COMPLETE.value
        )
        conversions = await self.repository.count_events(
            start, end, category=EventCategory.CONVERSION
        )
        return {
            "visitors": visitors,
            "page_views": page_views,
            "bookings": bookings,
            "conversions": conversions,
            "conversion_rate": (conversions / visitors) * 100 if visitors > 0 else 0.0,
        }

    async def get_live_stats(self) -> Dict[str, Any]:
        """Today's visitors, page views, completed bookings and conversion rate."""
        start, end = today_range()
        stats = await self._period_stats(start, end)
        return {
            "visitors": stats["visitors"],
            "page_views": stats["page_views"],
            "conversion_rate": stats["conversion_rate"],
            "bookings": stats["bookings"],
        }

    async def get_analytics_by_period(
        self,
        start: datetime,
        end: datetime,
        period: AnalyticsTimePeriod = AnalyticsTimePeriod.DAY,
    ) -> List[Dict[str, Any]]:
        """Per-bucket stats for [start, end)."""
        if start > end:
            raise ValueError("Start date must be before end date")

        results = []
        for bucket in generate_periods(start, end, period):
            stats = await self._period_stats(bucket.start, bucket.end)
            results.append({
                "label": bucket.label,
                "start": bucket.start.isoformat(),
                "end": bucket.end.isoformat(),
                **stats,
            })
        return results

    async def get_daily_trend(
        self,
        start: datetime,
        end: datetime,
        category: Optional[EventCategory] = None,
    ) -> List[Dict[str, Any]]:
        """Event counts per calendar day."""
        rows = await self.repository.daily_counts(start, end, category=category)
        return [{"date": day, "count": count} for day, count in rows]
