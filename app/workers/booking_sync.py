"""
Booking Sync Worker - pulls Cal.com bookings on a schedule.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from app.workers.celery_app import celery_app
from app.database import create_database
from app.redis import RedisClient
from app.services.booking_sync_service import BookingSyncService

logger = logging.getLogger(__name__)


async def _sync_bookings(force_full_sync: bool, batch_size: Optional[int]) -> Dict[str, Any]:
    database = create_database()
    try:
        async with database.session() as db:
            service = BookingSyncService(db)
            result = await service.sync_appointments(
                force_full_sync=force_full_sync,
                batch_size=batch_size,
            )
        return result.to_dict()
    finally:
        await RedisClient.close()
        await database.close()


@celery_app.task(bind=True, max_retries=3)
def sync_bookings(self, force_full_sync: bool = False, batch_size: Optional[int] = None):
    """
    Celery task to run the Cal.com booking sync.
    """
    try:
        result = asyncio.run(_sync_bookings(force_full_sync, batch_size))
        logger.info(f"Booking sync task finished: {result}")
        return {"status": "success", "result": result}
    except Exception as e:
        logger.error(f"Booking Sync Job Failed: {e}", exc_info=True)
        raise self.retry(exc=e, countdown=60)
