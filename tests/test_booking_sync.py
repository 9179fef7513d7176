"""
Tests for BookingSyncService.
"""

import httpx
import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock
from sqlalchemy import select

from app.models.booking import Booking
from app.models.customer import Customer
from app.models.sync_state import SyncStatus
from app.services.booking_sync_service import BookingSyncService
from app.services.cal_client import BookingPage, CalApiClient, CalApiError

START = datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc)


def cal_booking(booking_id, email=None, status="accepted", start=None, **extra):
    start = start or START + timedelta(days=booking_id)
    data = {
        "id": booking_id,
        "uid": f"uid-{booking_id}",
        "title": f"Session {booking_id}",
        "start": start.isoformat(),
        "end": (start + timedelta(hours=2)).isoformat(),
        "status": status,
        "attendees": [{"email": email or f"client{booking_id}@example.com", "name": "Client"}],
        "eventType": {"id": 1, "title": "Tattoo session", "slug": "session", "length": 120},
    }
    data.update(extra)
    return data


def make_service(db, *pages):
    client = AsyncMock()
    client.list_bookings.side_effect = list(pages)
    client.health_check.return_value = {"status": "ok", "timestamp": "now"}
    publisher = AsyncMock()
    return BookingSyncService(db, client=client, publisher=publisher)


@pytest.mark.asyncio
async def test_sync_creates_bookings_and_customers(db):
    page = BookingPage(bookings=[cal_booking(1), cal_booking(2)], has_more=False)
    service = make_service(db, page)

    result = await service.sync_appointments(force_full_sync=True)

    assert result.status == SyncStatus.SUCCESS
    assert (result.processed, result.created, result.updated, result.errors) == (2, 2, 0, 0)

    bookings = (await db.execute(select(Booking))).scalars().all()
    assert {b.cal_booking_uid for b in bookings} == {"uid-1", "uid-2"}
    assert all(b.status == "ACCEPTED" for b in bookings)
    assert all(b.customer_id is not None for b in bookings)
    assert service.publisher.publish_new_booking.await_count == 2


@pytest.mark.asyncio
async def test_sync_walks_pages_sequentially(db):
    first = BookingPage(bookings=[cal_booking(1), cal_booking(2)], has_more=True)
    second = BookingPage(bookings=[cal_booking(3)], has_more=False)
    service = make_service(db, first, second)

    result = await service.sync_appointments(batch_size=2)

    assert result.processed == 3
    offsets = [call.kwargs["offset"] for call in service.client.list_bookings.await_args_list]
    assert offsets == [0, 2]
    assert all(call.kwargs["limit"] == 2 for call in service.client.list_bookings.await_args_list)


@pytest.mark.asyncio
async def test_failed_record_is_counted_and_skipped(db):
    page = BookingPage(bookings=[cal_booking(i) for i in range(1, 6)], has_more=False)
    service = make_service(db, page)

    upsert = service.upsert_booking

    async def flaky_upsert(booking):
        if booking.id == 3:
            raise RuntimeError("bad record")
        return await upsert(booking)

    service.upsert_booking = flaky_upsert

    result = await service.sync_appointments()

    assert (result.processed, result.created, result.updated, result.errors) == (5, 4, 0, 1)
    assert result.status == SyncStatus.PARTIAL_SUCCESS

    state = await service.get_sync_state()
    assert state.last_run_status == "PARTIAL_SUCCESS"
    assert state.records_errored == 1

    stored = (await db.execute(select(Booking.cal_booking_id))).scalars().all()
    assert sorted(stored) == [1, 2, 4, 5]


@pytest.mark.asyncio
async def test_database_error_rolls_back_only_that_record(db):
    page = BookingPage(bookings=[cal_booking(1), cal_booking(2), cal_booking(3)], has_more=False)
    service = make_service(db, page)

    upsert = service.upsert_booking

    async def upsert_without_title(booking):
        # NOT NULL violation on insert
        if booking.id == 2:
            booking = booking.model_copy(update={"title": None})
        return await upsert(booking)

    service.upsert_booking = upsert_without_title

    result = await service.sync_appointments()

    assert result.errors == 1
    assert result.created == 2
    stored = (await db.execute(select(Booking.cal_booking_id))).scalars().all()
    assert sorted(stored) == [1, 3]


@pytest.mark.asyncio
async def test_malformed_provider_record_is_counted_and_skipped(db):
    records = [cal_booking(i) for i in range(1, 6)]
    records[2]["eventType"] = {"id": 1, "slug": "s"}

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"data": records, "pagination": {"hasMore": False}})

    client = CalApiClient(
        api_key="secret",
        base_url="https://cal.test/v2",
        transport=httpx.MockTransport(handler),
    )
    service = BookingSyncService(db, client=client, publisher=AsyncMock())

    result = await service.sync_appointments()

    assert (result.processed, result.created, result.updated, result.errors) == (5, 4, 0, 1)
    assert result.status == SyncStatus.PARTIAL_SUCCESS
    assert result.message == "1 of 5 bookings failed"

    stored = (await db.execute(select(Booking.cal_booking_id))).scalars().all()
    assert sorted(stored) == [1, 2, 4, 5]

    state = await service.get_sync_state()
    assert state.last_sync_at is not None


@pytest.mark.asyncio
async def test_page_fetch_failure_aborts_with_error(db):
    first = BookingPage(bookings=[cal_booking(1)], has_more=True)
    service = make_service(db, first, CalApiError(502, "Cal.com API error: Bad Gateway"))

    result = await service.sync_appointments()

    assert result.status == SyncStatus.ERROR
    assert result.errors == 0
    assert result.processed == 1
    assert "Bad Gateway" in result.message

    state = await service.get_sync_state()
    assert state.last_run_status == "ERROR"
    assert state.last_sync_at is None


@pytest.mark.asyncio
async def test_incremental_sync_uses_last_sync_time(db):
    service = make_service(
        db,
        BookingPage(bookings=[cal_booking(1)], has_more=False),
        BookingPage(bookings=[], has_more=False),
        BookingPage(bookings=[], has_more=False),
    )

    await service.sync_appointments()
    first_call = service.client.list_bookings.await_args_list[0]
    assert first_call.kwargs["start_after"] is None

    await service.sync_appointments()
    second_call = service.client.list_bookings.await_args_list[1]
    assert second_call.kwargs["start_after"] is not None

    await service.sync_appointments(force_full_sync=True)
    third_call = service.client.list_bookings.await_args_list[2]
    assert third_call.kwargs["start_after"] is None


@pytest.mark.asyncio
async def test_resync_updates_existing_bookings(db):
    service = make_service(
        db,
        BookingPage(bookings=[cal_booking(1)], has_more=False),
        BookingPage(bookings=[cal_booking(1, status="cancelled")], has_more=False),
    )

    await service.sync_appointments()
    result = await service.sync_appointments()

    assert (result.processed, result.created, result.updated) == (1, 0, 1)
    booking = (await db.execute(select(Booking))).scalar_one()
    assert booking.status == "CANCELLED"

    customer = (await db.execute(select(Customer))).scalar_one()
    assert customer.booking_count == 1
    assert service.publisher.publish_new_booking.await_count == 1


@pytest.mark.asyncio
async def test_customer_upsert_by_email(db):
    early = cal_booking(1, email="Sam@Example.com", start=START)
    late = cal_booking(2, email="sam@example.com", start=START + timedelta(days=30))
    service = make_service(db, BookingPage(bookings=[late, early], has_more=False))

    await service.sync_appointments()

    customer = (await db.execute(select(Customer))).scalar_one()
    assert customer.email == "sam@example.com"
    assert customer.booking_count == 2
    assert customer.first_booking_at.replace(tzinfo=timezone.utc) == START
    assert customer.last_booking_at.replace(tzinfo=timezone.utc) == START + timedelta(days=30)


@pytest.mark.asyncio
async def test_payment_fields_are_mirrored(db):
    paid = cal_booking(
        1,
        payment=[{"id": 77, "success": True, "amount": 120.0, "currency": "USD"}],
    )
    service = make_service(db, BookingPage(bookings=[paid], has_more=False))

    await service.sync_appointments()

    booking = (await db.execute(select(Booking))).scalar_one()
    assert booking.is_paid is True
    assert booking.payment_status == "COMPLETED"
    assert booking.payment_id == "77"


@pytest.mark.asyncio
async def test_sync_status_and_health(db):
    service = make_service(db, BookingPage(bookings=[cal_booking(1)], has_more=False))
    await service.sync_appointments()

    status = await service.get_sync_status()
    health = await service.health_check()

    assert status["last_run_status"] == "SUCCESS"
    assert status["records_processed"] == 1
    assert status["last_sync_at"] is not None
    assert health["status"] == "healthy"
    assert health["database"] is True


@pytest.mark.asyncio
async def test_health_degraded_when_provider_down(db):
    service = make_service(db)
    service.client.health_check.return_value = {"status": "error", "timestamp": "now"}

    health = await service.health_check()

    assert health["status"] == "degraded"
