"""
Admin API for the Cal.com booking sync.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_admin_user
from app.database import get_db
from app.services.booking_sync_service import BookingSyncService

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/sync/bookings")
async def trigger_booking_sync(
    force_full_sync: bool = False,
    batch_size: Optional[int] = Query(None, ge=1, le=250),
    db: AsyncSession = Depends(get_db),
    _: str = Depends(get_admin_user),
):
    """Run a booking sync now and return its counters."""
    try:
        service = BookingSyncService(db)
        result = await service.sync_appointments(
            force_full_sync=force_full_sync,
            batch_size=batch_size,
        )
    except Exception as e:
        logger.error(f"Manual booking sync failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Booking sync failed")

    return {"status": "success", "result": result.to_dict()}


@router.get("/sync/status")
async def get_sync_status(
    db: AsyncSession = Depends(get_db),
    _: str = Depends(get_admin_user),
):
    try:
        sync_status = await BookingSyncService(db).get_sync_status()
    except Exception as e:
        logger.error(f"Error reading sync status: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to read sync status")

    return {"status": "success", "sync": sync_status}


@router.get("/sync/health")
async def get_sync_health(
    db: AsyncSession = Depends(get_db),
    _: str = Depends(get_admin_user),
):
    health = await BookingSyncService(db).health_check()
    return {"status": "success", "health": health}
