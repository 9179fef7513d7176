"""Models package for database models."""

from app.models.analytics_event import AnalyticsEvent
from app.models.booking import Booking
from app.models.customer import Customer
from app.models.sync_state import SyncState
from app.models.gallery_item import GalleryItem
from app.models.cal_webhook_event import CalWebhookEvent

__all__ = [
    "AnalyticsEvent",
    "Booking",
    "Customer",
    "SyncState",
    "GalleryItem",
    "CalWebhookEvent",
]
