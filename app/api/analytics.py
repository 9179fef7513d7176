"""
Analytics API.
Event ingestion (public) and dashboard reporting (admin).
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.analytics.events import DeviceType, EventCategory, parse_event
from app.analytics.filters import AnalyticsFilter, SortField
from app.analytics.periods import AnalyticsTimePeriod, DateRange, range_for_period
from app.api.deps import get_admin_user
from app.database import get_db
from app.services.analytics_service import AnalyticsService

logger = logging.getLogger(__name__)
router = APIRouter()


def _resolve_range(
    period: AnalyticsTimePeriod,
    start_date: Optional[datetime],
    end_date: Optional[datetime],
) -> DateRange:
    if (start_date is None) != (end_date is None):
        raise HTTPException(
            status_code=400,
            detail="start_date and end_date must be supplied together",
        )
    if start_date and end_date:
        if start_date > end_date:
            raise HTTPException(status_code=400, detail="start_date must be before end_date")
        return range_for_period(AnalyticsTimePeriod.CUSTOM, DateRange(start_date, end_date))
    return range_for_period(period)


@router.post("/events")
async def track_event(
    payload: Dict[str, Any] = Body(...),
    db: AsyncSession = Depends(get_db),
):
    """Ingest one analytics event."""
    try:
        event = parse_event(payload)
    except ValidationError as e:
        logger.info(f"Rejected analytics event: {e.error_count()} validation errors")
        raise HTTPException(
            status_code=422,
            detail=e.errors(include_url=False, include_context=False, include_input=False),
        )

    try:
        row = await AnalyticsService(db).store_event(event)
    except Exception:
        raise HTTPException(status_code=500, detail="Failed to track event")

    return {"status": "success", "id": str(row.id)}


@router.get("/events")
async def list_events(
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    categories: Optional[List[EventCategory]] = Query(None),
    actions: Optional[List[str]] = Query(None),
    user_id: Optional[str] = None,
    path: Optional[str] = None,
    device_type: Optional[DeviceType] = None,
    page: int = 1,
    limit: int = 50,
    sort_by: SortField = "timestamp",
    sort_dir: Literal["asc", "desc"] = "desc",
    db: AsyncSession = Depends(get_db),
    _: str = Depends(get_admin_user),
):
    """Filtered, paginated analytics events."""
    try:
        f = AnalyticsFilter(
            start_date=start_date,
            end_date=end_date,
            categories=categories,
            actions=actions,
            user_id=user_id,
            path=path,
            device_type=device_type,
            page=page,
            limit=limit,
            sort_by=sort_by,
            sort_dir=sort_dir,
        )
    except ValidationError as e:
        raise HTTPException(
            status_code=400,
            detail=e.errors(include_url=False, include_context=False, include_input=False),
        )

    try:
        result = await AnalyticsService(db).query_events(f)
    except Exception:
        raise HTTPException(status_code=500, detail="Failed to query analytics events")

    return {"status": "success", **result}


@router.get("/summary")
async def get_summary(
    period: AnalyticsTimePeriod = AnalyticsTimePeriod.MONTH,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    db: AsyncSession = Depends(get_db),
    _: str = Depends(get_admin_user),
):
    start, end = _resolve_range(period, start_date, end_date)
    try:
        summary = await AnalyticsService(db).get_summary(start, end)
    except Exception:
        raise HTTPException(status_code=500, detail="Failed to get analytics summary")

    return {
        "status": "success",
        "start": start.isoformat(),
        "end": end.isoformat(),
        "summary": summary,
    }


@router.get("/booking-funnel")
async def get_booking_funnel(
    period: AnalyticsTimePeriod = AnalyticsTimePeriod.MONTH,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    db: AsyncSession = Depends(get_db),
    _: str = Depends(get_admin_user),
):
    start, end = _resolve_range(period, start_date, end_date)
    try:
        funnel = await AnalyticsService(db).get_booking_funnel(start, end)
    except Exception:
        raise HTTPException(status_code=500, detail="Failed to get booking funnel analytics")

    return {"status": "success", "funnel": funnel}


@router.get("/top-designs")
async def get_top_designs(
    limit: int = Query(10, ge=1, le=50),
    db: AsyncSession = Depends(get_db),
    _: str = Depends(get_admin_user),
):
    try:
        designs = await AnalyticsService(db).get_top_designs(limit=limit)
    except Exception:
        raise HTTPException(status_code=500, detail="Failed to get top designs")

    return {"status": "success", "items": designs}


@router.get("/live")
async def get_live_stats(
    db: AsyncSession = Depends(get_db),
    _: str = Depends(get_admin_user),
):
    """Today's headline numbers."""
    try:
        stats = await AnalyticsService(db).get_live_stats()
    except Exception as e:
        logger.error(f"Error getting live analytics: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to get live analytics")

    return {"status": "success", **stats}


@router.get("/trend")
async def get_daily_trend(
    period: AnalyticsTimePeriod = AnalyticsTimePeriod.MONTH,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    category: Optional[EventCategory] = None,
    db: AsyncSession = Depends(get_db),
    _: str = Depends(get_admin_user),
):
    start, end = _resolve_range(period, start_date, end_date)
    try:
        trend = await AnalyticsService(db).get_daily_trend(start, end, category=category)
    except Exception as e:
        logger.error(f"Error getting daily trend: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to get daily trend")

    return {"status": "success", "items": trend}


@router.get("/periods")
async def get_analytics_by_period(
    start_date: datetime,
    end_date: datetime,
    period: AnalyticsTimePeriod = AnalyticsTimePeriod.DAY,
    db: AsyncSession = Depends(get_db),
    _: str = Depends(get_admin_user),
):
    """Stats bucketed by day / week / month / quarter / year."""
    try:
        items = await AnalyticsService(db).get_analytics_by_period(start_date, end_date, period)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error getting analytics by period: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to get analytics by period")

    return {"status": "success", "items": items}
