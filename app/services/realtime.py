"""
Real-time Publisher - pushes dashboard updates over Redis pub/sub.

Delivery is at-most-once: a failed publish is logged and dropped. Nothing
waits for subscribers and nothing is retried.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from redis.asyncio.client import Redis

from app.config import settings
from app.redis import RedisClient

logger = logging.getLogger(__name__)

NEW_BOOKING = "new-booking"
BOOKING_UPDATE = "booking-update"
METRICS_UPDATE = "metrics-update"


class RealtimePublisher:
    """Publish-only wrapper around a Redis channel."""

    def __init__(
        self,
        redis_factory: Optional[Callable[[], Redis]] = None,
        channel: Optional[str] = None,
    ):
        self._redis_factory = redis_factory or RedisClient.get_client
        self.channel = channel or settings.realtime_channel

    async def publish(self, event_type: str, payload: Dict[str, Any]) -> bool:
        """Fire-and-forget publish. Returns False when the publish failed."""
        message = json.dumps(
            {
                "type": event_type,
                "data": payload,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
            default=str,
        )
        try:
            redis = self._redis_factory()
            await redis.publish(self.channel, message)
            return True
        except Exception as e:
            logger.warning(f"Real-time publish of {event_type} failed: {e}")
            return False

    async def publish_new_booking(self, booking: Dict[str, Any]) -> bool:
        return await self.publish(NEW_BOOKING, booking)

    async def publish_booking_update(self, update: Dict[str, Any]) -> bool:
        return await self.publish(BOOKING_UPDATE, update)

    async def publish_metrics_update(self, metrics: Dict[str, Any]) -> bool:
        return await self.publish(METRICS_UPDATE, metrics)
