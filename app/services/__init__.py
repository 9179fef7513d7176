"""Services package."""

from app.services.analytics_service import AnalyticsService
from app.services.analytics_repository import AnalyticsRepository
from app.services.booking_sync_service import BookingSyncService, SyncResult
from app.services.cal_client import CalApiClient, CalApiError
from app.services.cal_webhook_service import CalWebhookService
from app.services.realtime import RealtimePublisher

__all__ = [
    "AnalyticsService",
    "AnalyticsRepository",
    "BookingSyncService",
    "SyncResult",
    "CalApiClient",
    "CalApiError",
    "CalWebhookService",
    "RealtimePublisher",
]
