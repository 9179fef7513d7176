"""
Webhook Cleanup Worker - deletes stored Cal.com deliveries past retention.
"""

import asyncio
import logging
from typing import Optional

from app.workers.celery_app import celery_app
from app.database import create_database
from app.services.cal_webhook_service import CalWebhookService

logger = logging.getLogger(__name__)


async def _cleanup(retention_days: Optional[int]) -> int:
    database = create_database()
    try:
        async with database.session() as db:
            return await CalWebhookService(db).cleanup_webhook_events(retention_days)
    finally:
        await database.close()


@celery_app.task(bind=True, max_retries=3)
def cleanup_webhook_events(self, retention_days: Optional[int] = None):
    """Daily retention sweep over cal_webhook_events."""
    try:
        deleted = asyncio.run(_cleanup(retention_days))
        return {"status": "success", "deleted": deleted}
    except Exception as e:
        logger.error(f"Webhook cleanup failed: {e}", exc_info=True)
        raise self.retry(exc=e, countdown=300)
