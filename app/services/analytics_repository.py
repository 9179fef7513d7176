"""
Analytics Repository - every SQL statement the analytics layer needs.

Callers get typed rows and numbers back; dialect details (date
truncation, JSON columns) stay in here.
"""

import logging
from datetime import date, datetime
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import select, func, distinct, asc, desc
from sqlalchemy.ext.asyncio import AsyncSession

from app.analytics.events import BaseEvent, EventCategory, GALLERY_VIEW_ACTION, extract_metadata
from app.analytics.filters import AnalyticsFilter
from app.models.analytics_event import AnalyticsEvent, utcnow
from app.models.gallery_item import GalleryItem

logger = logging.getLogger(__name__)


class AnalyticsRepository:
    """Data access for analytics events and gallery details."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def add_event(self, event: BaseEvent) -> AnalyticsEvent:
        """Insert one event row."""
        row = AnalyticsEvent(
            timestamp=event.timestamp or utcnow(),
            user_id=event.user_id,
            session_id=event.session_id,
            category=EventCategory(event.category).value,
            action=str(getattr(event.action, "value", event.action)),
            label=event.label or None,
            value=event.value,
            path=event.path or None,
            referrer=event.referrer or None,
            device_type=event.device_type.value if event.device_type else None,
            browser=event.browser or None,
            os=event.os or None,
            attributes=extract_metadata(event),
        )
        self.db.add(row)
        await self.db.flush()
        return row

    def _filter_conditions(self, f: AnalyticsFilter) -> list:
        conditions = []
        if f.start_date:
            conditions.append(AnalyticsEvent.timestamp >= f.start_date)
        if f.end_date:
            conditions.append(AnalyticsEvent.timestamp <= f.end_date)
        if f.categories:
            conditions.append(AnalyticsEvent.category.in_([c.value for c in f.categories]))
        if f.actions:
            conditions.append(AnalyticsEvent.action.in_(f.actions))
        if f.user_id:
            conditions.append(AnalyticsEvent.user_id == f.user_id)
        if f.path:
            conditions.append(AnalyticsEvent.path == f.path)
        if f.device_type:
            conditions.append(AnalyticsEvent.device_type == f.device_type.value)
        return conditions

    async def query_events(self, f: AnalyticsFilter) -> Tuple[List[AnalyticsEvent], int]:
        """One page of matching events plus the total match count."""
        conditions = self._filter_conditions(f)

        order_column = getattr(AnalyticsEvent, f.sort_by)
        order = asc(order_column) if f.sort_dir == "asc" else desc(order_column)

        result = await self.db.execute(
            select(AnalyticsEvent)
            .where(*conditions)
            .order_by(order)
            .offset(f.skip)
            .limit(f.limit)
        )
        events = list(result.scalars().all())

        total_result = await self.db.execute(
            select(func.count(AnalyticsEvent.id)).where(*conditions)
        )
        total = total_result.scalar() or 0

        return events, total

    async def events_between(
        self,
        start: datetime,
        end: datetime,
        category: Optional[EventCategory] = None,
    ) -> List[AnalyticsEvent]:
        """All events in [start, end], oldest first."""
        stmt = (
            select(AnalyticsEvent)
            .where(AnalyticsEvent.timestamp >= start)
            .where(AnalyticsEvent.timestamp <= end)
        )
        if category:
            stmt = stmt.where(AnalyticsEvent.category == category.value)

        result = await self.db.execute(stmt.order_by(AnalyticsEvent.timestamp.asc()))
        return list(result.scalars().all())

    async def gallery_events(self, views: bool) -> List[AnalyticsEvent]:
        """Gallery "view" events, or every other gallery action."""
        action_filter = (
            AnalyticsEvent.action == GALLERY_VIEW_ACTION
            if views
            else AnalyticsEvent.action != GALLERY_VIEW_ACTION
        )
        result = await self.db.execute(
            select(AnalyticsEvent)
            .where(AnalyticsEvent.category == EventCategory.GALLERY.value)
            .where(action_filter)
            .order_by(AnalyticsEvent.timestamp.asc())
        )
        return list(result.scalars().all())

    async def gallery_items(self, ids: Sequence[str]) -> List[GalleryItem]:
        if not ids:
            return []
        result = await self.db.execute(
            select(GalleryItem).where(GalleryItem.id.in_(list(ids)))
        )
        return list(result.scalars().all())

    async def count_events(
        self,
        start: datetime,
        end: datetime,
        category: Optional[EventCategory] = None,
        action: Optional[str] = None,
    ) -> int:
        """Events in [start, end)."""
        stmt = (
            select(func.count(AnalyticsEvent.id))
            .where(AnalyticsEvent.timestamp >= start)
            .where(AnalyticsEvent.timestamp < end)
        )
        if category:
            stmt = stmt.where(AnalyticsEvent.category == category.value)
        if action:
            stmt = stmt.where(AnalyticsEvent.action == action)
        result = await self.db.execute(stmt)
        return result.scalar() or 0

    async def count_unique_sessions(self, start: datetime, end: datetime) -> int:
        """Distinct session ids in [start, end)."""
        result = await self.db.execute(
            select(func.count(distinct(AnalyticsEvent.session_id)))
            .where(AnalyticsEvent.timestamp >= start)
            .where(AnalyticsEvent.timestamp < end)
            .where(AnalyticsEvent.session_id.isnot(None))
        )
        return result.scalar() or 0

    async def daily_counts(
        self,
        start: datetime,
        end: datetime,
        category: Optional[EventCategory] = None,
    ) -> List[Tuple[str, int]]:
        """(YYYY-MM-DD, event count) per day in [start, end]."""
        day = func.date(AnalyticsEvent.timestamp).label("day")
        stmt = (
            select(day, func.count(AnalyticsEvent.id))
            .where(AnalyticsEvent.timestamp >= start)
            .where(AnalyticsEvent.timestamp <= end)
        )
        if category:
            stmt = stmt.where(AnalyticsEvent.category == category.value)

        result = await self.db.execute(stmt.group_by(day).order_by(day))
        rows = []
        for day_value, count in result.all():
            # date on Postgres, ISO string on SQLite
            label = day_value.isoformat() if isinstance(day_value, date) else str(day_value)
            rows.append((label, int(count)))
        return rows
