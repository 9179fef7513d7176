"""
Celery application configuration.
"""

from celery import Celery
from celery.schedules import crontab

from app.config import settings

# Create Celery app
celery_app = Celery(
    "inkstudio",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=[
        "app.workers.booking_sync",
        "app.workers.webhook_cleanup",
    ],
)

# Celery configuration
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=300,  # 5 minutes
    worker_prefetch_multiplier=1,
    task_acks_late=True,
)

# Beat schedule for periodic tasks
celery_app.conf.beat_schedule = {
    # Incremental Cal.com booking sync
    "booking-sync": {
        "task": "app.workers.booking_sync.sync_bookings",
        "schedule": crontab(minute="*/15"),
    },
    # Drop webhook deliveries past the retention window at 03:00 UTC
    "webhook-event-cleanup": {
        "task": "app.workers.webhook_cleanup.cleanup_webhook_events",
        "schedule": crontab(hour=3, minute=0),
    },
}
