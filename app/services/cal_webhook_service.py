"""
Cal.com Webhook Service.
Stores every delivery, then applies it to the local booking mirror.
"""

import hmac
import hashlib
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Literal, Optional

from sqlalchemy import delete, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.booking import Booking, BookingStatus, PaymentStatus
from app.models.cal_webhook_event import CalWebhookEvent
from app.services.booking_sync_service import BookingSyncService, booking_event_payload, to_decimal
from app.services.cal_client import CalBooking, CalModel
from app.services.realtime import RealtimePublisher

logger = logging.getLogger(__name__)

TriggerEvent = Literal[
    "BOOKING_CREATED",
    "BOOKING_CONFIRMED",
    "BOOKING_CANCELLED",
    "BOOKING_RESCHEDULED",
    "BOOKING_REJECTED",
    "PAYMENT_COMPLETED",
    "MEETING_ENDED",
]


class CalWebhookBooking(CalBooking):
    cancellation_reason: Optional[str] = None
    rescheduled_from_uid: Optional[str] = None


class CalWebhookEnvelope(CalModel):
    """Body of a Cal.com webhook delivery."""
    trigger_event: TriggerEvent
    created_at: datetime
    payload: CalWebhookBooking


def verify_signature(body: bytes, signature: Optional[str], secret: Optional[str] = None) -> bool:
    """
    Verify the `cal-webhook-signature` header (hex HMAC-SHA256 of the raw
    body, optionally prefixed with `sha256=`).
    """
    secret = settings.cal_webhook_secret if secret is None else secret
    if not secret:
        if settings.is_development:
            logger.warning("Cal webhook secret not configured, skipping verification")
            return True
        logger.error("Cal webhook secret not configured")
        return False

    if not signature:
        return False

    if signature.startswith("sha256="):
        signature = signature[len("sha256="):]

    expected = hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, signature)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class CalWebhookService:
    """Service for Cal.com webhook deliveries."""

    def __init__(
        self,
        db: AsyncSession,
        publisher: Optional[RealtimePublisher] = None,
        sync_service: Optional[BookingSyncService] = None,
    ):
        self.db = db
        self.publisher = publisher or RealtimePublisher()
        self.sync_service = sync_service or BookingSyncService(db, publisher=self.publisher)

    async def record_event(
        self,
        envelope: CalWebhookEnvelope,
        signature: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> CalWebhookEvent:
        """Store the raw delivery before anything else happens to it."""
        event = CalWebhookEvent(
            trigger_event=envelope.trigger_event,
            cal_booking_id=envelope.payload.id,
            cal_booking_uid=envelope.payload.uid,
            payload=envelope.payload.model_dump(mode="json", by_alias=True),
            signature=signature,
            ip_address=ip_address,
            user_agent=(user_agent or "")[:255] or None,
            processed=False,
            retry_count=0,
        )
        self.db.add(event)
        await self.db.flush()
        return event

    async def process_event(
        self,
        event: CalWebhookEvent,
        envelope: CalWebhookEnvelope,
    ) -> bool:
        """
        Apply a stored delivery. Failures are written to the row rather
        than raised. Returns True when the delivery was applied.
        """
        try:
            async with self.db.begin_nested():
                await self._dispatch(envelope)
        except Exception as e:
            logger.error(
                f"Error processing Cal webhook {envelope.trigger_event} "
                f"for {envelope.payload.uid}: {e}",
                exc_info=True,
            )
            event.processing_error = str(e)
            event.retry_count = (event.retry_count or 0) + 1
            await self.db.flush()
            return False

        event.processed = True
        event.processed_at = _now()
        event.processing_error = None
        await self.db.flush()
        return True

    async def _dispatch(self, envelope: CalWebhookEnvelope) -> None:
        booking = envelope.payload
        trigger = envelope.trigger_event

        if trigger == "BOOKING_CREATED":
            await self.handle_booking_created(booking)
        elif trigger == "BOOKING_CONFIRMED":
            await self._set_status(booking, BookingStatus.CONFIRMED, confirmed_at=_now())
            await self._publish_update("booking-confirmed", booking, "confirmed")
        elif trigger == "BOOKING_CANCELLED":
            values: Dict[str, Any] = {"cancelled_at": _now()}
            if booking.cancellation_reason:
                values["internal_notes"] = f"Cancelled: {booking.cancellation_reason}"
            await self._set_status(booking, BookingStatus.CANCELLED, **values)
            await self._publish_update("booking-cancelled", booking, "cancelled")
        elif trigger == "BOOKING_RESCHEDULED":
            await self.handle_booking_rescheduled(booking)
        elif trigger == "BOOKING_REJECTED":
            await self._set_status(booking, BookingStatus.REJECTED)
        elif trigger == "PAYMENT_COMPLETED":
            await self.handle_payment_completed(booking)
        elif trigger == "MEETING_ENDED":
            await self._set_status(booking, BookingStatus.COMPLETED, completed_at=_now())

        await self.publisher.publish_metrics_update({
            "source": "cal_webhook",
            "trigger": trigger,
        })

    async def handle_booking_created(self, booking: CalWebhookBooking) -> None:
        _, created = await self.sync_service.upsert_booking(booking)
        if created:
            await self.publisher.publish_new_booking(booking_event_payload(booking))
        logger.info(f"Booking {booking.uid} {'created' if created else 'refreshed'} from webhook")

    async def handle_booking_rescheduled(self, booking: CalWebhookBooking) -> None:
        notes = (
            f"Rescheduled from booking {booking.rescheduled_from_uid}"
            if booking.rescheduled_from_uid
            else "Rescheduled"
        )
        await self.db.execute(
            update(Booking)
            .where(Booking.cal_booking_uid == booking.uid)
            .values(
                start_time=booking.start,
                end_time=booking.end,
                rescheduled_at=_now(),
                internal_notes=notes,
            )
        )
        await self._publish_update("booking-rescheduled", booking, booking.status)

    async def handle_payment_completed(self, booking: CalWebhookBooking) -> None:
        values: Dict[str, Any] = {
            "is_paid": True,
            "payment_status": PaymentStatus.COMPLETED.value,
        }
        if booking.payment:
            payment = booking.payment[0]
            values["payment_id"] = str(payment.id)
            values["payment_amount"] = to_decimal(payment.amount)
            values["payment_currency"] = payment.currency

        await self.db.execute(
            update(Booking).where(Booking.cal_booking_uid == booking.uid).values(**values)
        )
        logger.info(f"Payment completed for booking {booking.uid}")

    async def _set_status(
        self,
        booking: CalWebhookBooking,
        status: BookingStatus,
        **values: Any,
    ) -> None:
        await self.db.execute(
            update(Booking)
            .where(Booking.cal_booking_uid == booking.uid)
            .values(status=status.value, **values)
        )
        logger.info(f"Booking {booking.uid} marked {status.value}")

    async def _publish_update(
        self,
        update_type: str,
        booking: CalWebhookBooking,
        status: str,
    ) -> None:
        payload = booking_event_payload(booking)
        payload["status"] = status
        await self.publisher.publish_booking_update({
            "type": update_type,
            "booking": payload,
            "timestamp": _now().isoformat(),
        })

    async def cleanup_webhook_events(self, retention_days: Optional[int] = None) -> int:
        """Delete deliveries older than the retention window. Returns rows removed."""
        retention_days = retention_days or settings.webhook_retention_days
        cutoff = _now() - timedelta(days=retention_days)

        result = await self.db.execute(
            delete(CalWebhookEvent)
            .where(CalWebhookEvent.received_at < cutoff)
            .execution_options(synchronize_session=False)
        )
        deleted = result.rowcount or 0
        logger.info(f"Deleted {deleted} webhook events older than {retention_days} days")
        return deleted
