"""
Booking Sync Service - mirrors Cal.com bookings into local tables.

Pages are fetched strictly one after another. Each booking is validated
and upserted in its own savepoint so one bad record is counted and skipped without
losing the rest of the batch. A failed page fetch stops the run.
"""

import logging
import time
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple

from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.booking import Booking, BookingStatus, PaymentStatus
from app.models.customer import Customer
from app.models.sync_state import SyncState, SyncStatus
from app.services.cal_client import CalApiClient, CalBooking
from app.services.realtime import RealtimePublisher

logger = logging.getLogger(__name__)

SYNC_TYPE_BOOKINGS = "cal_bookings"


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def to_decimal(value: Optional[float]) -> Optional[Decimal]:
    return Decimal(str(value)) if value is not None else None


def _record_id(record: Any) -> Any:
    return record.get("id") if isinstance(record, dict) else None


def apply_cal_booking(booking: Booking, cal: CalBooking) -> None:
    """Copy provider fields onto the local mirror row."""
    booking.cal_booking_id = cal.id
    booking.cal_booking_uid = cal.uid
    booking.title = cal.title
    booking.description = cal.description
    booking.start_time = cal.start
    booking.end_time = cal.end
    booking.status = BookingStatus.from_provider(cal.status).value
    booking.provider_created_at = cal.created_at
    booking.provider_updated_at = cal.updated_at

    if cal.attendees:
        attendee = cal.attendees[0]
        booking.attendee_name = attendee.name
        booking.attendee_email = attendee.email.lower()
        booking.attendee_time_zone = attendee.time_zone

    if cal.event_type:
        booking.event_type_id = cal.event_type.id
        booking.event_type_title = cal.event_type.title
        booking.event_type_slug = cal.event_type.slug
        booking.event_length = cal.event_type.length
        booking.price = to_decimal(cal.event_type.price)
        booking.currency = cal.event_type.currency

    if cal.payment:
        payment = cal.payment[0]
        booking.payment_id = str(payment.id)
        booking.payment_amount = to_decimal(payment.amount)
        booking.payment_currency = payment.currency
        booking.is_paid = payment.success
        booking.payment_status = (
            PaymentStatus.COMPLETED.value if payment.success else PaymentStatus.PENDING.value
        )


def booking_event_payload(cal: CalBooking) -> Dict[str, Any]:
    """Payload for new-booking / booking-update real-time events."""
    attendee = cal.attendees[0] if cal.attendees else None
    return {
        "id": cal.uid,
        "title": cal.title,
        "attendee": {
            "name": attendee.name if attendee else "",
            "email": attendee.email if attendee else "",
        },
        "start_time": cal.start.isoformat(),
        "event_type": cal.event_type.title if cal.event_type else None,
        "status": cal.status,
    }


@dataclass
class SyncResult:
    """Outcome of one sync run."""
    processed: int = 0
    created: int = 0
    updated: int = 0
    errors: int = 0
    status: SyncStatus = SyncStatus.SUCCESS
    message: str = ""
    duration_seconds: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return data


class BookingSyncService:
    """Service for pulling bookings from Cal.com."""

    def __init__(
        self,
        db: AsyncSession,
        client: Optional[CalApiClient] = None,
        publisher: Optional[RealtimePublisher] = None,
    ):
        self.db = db
        self.client = client or CalApiClient()
        self.publisher = publisher or RealtimePublisher()

    async def get_sync_state(self, sync_type: str = SYNC_TYPE_BOOKINGS) -> SyncState:
        """Load the bookkeeping row, creating it on first use."""
        result = await self.db.execute(
            select(SyncState).where(SyncState.sync_type == sync_type)
        )
        state = result.scalar_one_or_none()
        if state is None:
            state = SyncState(sync_type=sync_type, records_processed=0, records_errored=0)
            self.db.add(state)
            await self.db.flush()
        return state

    async def upsert_customer(self, cal: CalBooking) -> Optional[Customer]:
        """Find or create the customer for the booking's first attendee."""
        if not cal.attendees:
            return None

        attendee = cal.attendees[0]
        email = attendee.email.lower()

        result = await self.db.execute(select(Customer).where(Customer.email == email))
        customer = result.scalar_one_or_none()
        if customer is None:
            customer = Customer(email=email, booking_count=0)
            self.db.add(customer)
            logger.info(f"Created customer {email}")

        if attendee.name and not customer.name:
            customer.name = attendee.name
        if attendee.time_zone:
            customer.time_zone = attendee.time_zone

        customer.booking_count = (customer.booking_count or 0) + 1

        start = _as_utc(cal.start)
        first = _as_utc(customer.first_booking_at)
        last = _as_utc(customer.last_booking_at)
        if first is None or start < first:
            customer.first_booking_at = start
        if last is None or start > last:
            customer.last_booking_at = start

        await self.db.flush()
        return customer

    async def upsert_booking(self, cal: CalBooking) -> Tuple[Booking, bool]:
        """
        Insert or update the mirror row keyed by provider id.
        Returns (booking, created).
        """
        result = await self.db.execute(
            select(Booking).where(Booking.cal_booking_id == cal.id)
        )
        booking = result.scalar_one_or_none()
        created = booking is None

        if created:
            booking = Booking(cal_booking_id=cal.id)
            self.db.add(booking)

        apply_cal_booking(booking, cal)

        if created:
            customer = await self.upsert_customer(cal)
            if customer is not None:
                booking.customer_id = customer.id

        await self.db.flush()
        return booking, created

    async def _record_run(
        self,
        state: SyncState,
        result: SyncResult,
        synced_at: Optional[datetime],
    ) -> None:
        state.records_processed = result.processed
        state.records_errored = result.errors
        state.last_run_status = result.status.value
        state.last_error = result.message or None
        if synced_at is not None:
            state.last_sync_at = synced_at
        await self.db.flush()

    async def sync_appointments(
        self,
        force_full_sync: bool = False,
        batch_size: Optional[int] = None,
    ) -> SyncResult:
        """
        Pull bookings page by page and upsert them.

        Delta sync passes the last successful sync time as `startAfter`
        unless `force_full_sync` is set.
        """
        batch_size = batch_size or settings.sync_batch_size
        started = time.monotonic()
        run_started_at = datetime.now(timezone.utc)

        state = await self.get_sync_state()
        start_after = None if force_full_sync else _as_utc(state.last_sync_at)

        logger.info(
            f"Starting booking sync (full={force_full_sync}, start_after={start_after}, "
            f"batch_size={batch_size})"
        )

        result = SyncResult()
        offset = 0

        try:
            while True:
                page = await self.client.list_bookings(
                    limit=batch_size,
                    offset=offset,
                    start_after=start_after,
                )

                for record in page.bookings:
                    result.processed += 1
                    try:
                        cal_booking = CalBooking.model_validate(record)
                        async with self.db.begin_nested():
                            _, created = await self.upsert_booking(cal_booking)
                    except Exception as e:
                        result.errors += 1
                        logger.error(
                            f"Failed to upsert booking {_record_id(record)}: {e}",
                            exc_info=True,
                        )
                        continue

                    if created:
                        result.created += 1
                        await self.publisher.publish_new_booking(
                            booking_event_payload(cal_booking)
                        )
                    else:
                        result.updated += 1

                if not page.has_more or not page.bookings:
                    break
                offset += len(page.bookings)

        except Exception as e:
            result.status = SyncStatus.ERROR
            result.message = str(e)
            result.duration_seconds = time.monotonic() - started
            logger.error(f"Booking sync aborted at offset {offset}: {e}", exc_info=True)
            await self._record_run(state, result, synced_at=None)
            return result

        result.status = SyncStatus.SUCCESS if result.errors == 0 else SyncStatus.PARTIAL_SUCCESS
        if result.errors:
            result.message = f"{result.errors} of {result.processed} bookings failed"
        result.duration_seconds = time.monotonic() - started

        await self._record_run(state, result, synced_at=run_started_at)

        if result.created or result.updated:
            await self.publisher.publish_metrics_update({
                "source": "booking_sync",
                "created": result.created,
                "updated": result.updated,
            })

        logger.info(
            f"Booking sync completed: processed={result.processed} created={result.created} "
            f"updated={result.updated} errors={result.errors} status={result.status.value}"
        )
        return result

    async def get_sync_status(self) -> Dict[str, Any]:
        state = await self.get_sync_state()
        last_sync_at = _as_utc(state.last_sync_at)
        return {
            "sync_type": state.sync_type,
            "last_sync_at": last_sync_at.isoformat() if last_sync_at else None,
            "records_processed": state.records_processed,
            "records_errored": state.records_errored,
            "last_run_status": state.last_run_status,
            "last_error": state.last_error,
        }

    async def health_check(self) -> Dict[str, Any]:
        """Database and provider reachability."""
        try:
            await self.db.execute(text("SELECT 1"))
            database_ok = True
        except Exception as e:
            logger.error(f"Sync health check: database unreachable: {e}")
            database_ok = False

        provider = await self.client.health_check()
        provider_ok = provider["status"] == "ok"

        if database_ok and provider_ok:
            status = "healthy"
        elif database_ok:
            status = "degraded"
        else:
            status = "unhealthy"

        state = await self.get_sync_status() if database_ok else None
        return {
            "status": status,
            "database": database_ok,
            "provider": provider,
            "last_sync_at": state["last_sync_at"] if state else None,
        }
