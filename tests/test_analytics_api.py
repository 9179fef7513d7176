"""
Tests for the analytics, admin sync and health routes.
"""

import json
import logging
import pytest
from unittest.mock import AsyncMock, patch

from app.logging_config import JSONFormatter
from app.models.sync_state import SyncStatus
from app.services.booking_sync_service import SyncResult


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["database"] is True


@pytest.mark.asyncio
async def test_health_degraded_when_database_unreachable(client):
    with patch("app.database.Database.ping", AsyncMock(side_effect=OSError("connection refused"))):
        response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "degraded"
    assert response.json()["database"] is False


@pytest.mark.asyncio
async def test_track_event_is_public(client):
    response = await client.post(
        "/analytics/events",
        json={"category": "page_view", "action": "view", "path": "/gallery", "sessionId": "s1"},
    )

    assert response.status_code == 200
    assert response.json()["status"] == "success"


@pytest.mark.asyncio
async def test_track_event_validation_error(client):
    response = await client.post(
        "/analytics/events",
        json={"category": "error", "action": "error"},
    )

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_admin_routes_require_key(client):
    missing = await client.get("/analytics/events")
    wrong = await client.get("/analytics/events", headers={"X-Admin-Key": "nope"})

    assert missing.status_code == 401
    assert wrong.status_code == 401


@pytest.mark.asyncio
async def test_query_events_route(client, admin_headers):
    for path in ["/gallery", "/gallery", "/contact"]:
        await client.post("/analytics/events", json={"category": "page_view", "path": path})

    response = await client.get(
        "/analytics/events",
        params={"categories": ["page_view"], "path": "/gallery", "limit": 1},
        headers=admin_headers,
    )

    body = response.json()
    assert response.status_code == 200
    assert len(body["events"]) == 1
    assert body["pagination"] == {"total": 2, "page": 1, "limit": 1, "page_count": 2}


@pytest.mark.asyncio
async def test_query_events_rejects_bad_limit(client, admin_headers):
    response = await client.get("/analytics/events", params={"limit": 500}, headers=admin_headers)

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_summary_route_with_custom_range(client, admin_headers):
    await client.post(
        "/analytics/events",
        json={"category": "page_view", "path": "/gallery", "timestamp": "2026-01-10T10:00:00Z"},
    )

    response = await client.get(
        "/analytics/summary",
        params={"start_date": "2026-01-10T00:00:00Z", "end_date": "2026-01-11T00:00:00Z"},
        headers=admin_headers,
    )

    summary = response.json()["summary"]
    assert summary["total_events"] == 1
    assert summary["top_pages"] == [{"path": "/gallery", "count": 1}]


@pytest.mark.asyncio
async def test_summary_route_rejects_inverted_range(client, admin_headers):
    response = await client.get(
        "/analytics/summary",
        params={"start_date": "2026-01-11T00:00:00Z", "end_date": "2026-01-10T00:00:00Z"},
        headers=admin_headers,
    )

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_range_routes_reject_half_open_range(client, admin_headers):
    for path in ["/analytics/summary", "/analytics/booking-funnel", "/analytics/trend"]:
        only_start = await client.get(
            path, params={"start_date": "2026-01-10T00:00:00Z"}, headers=admin_headers
        )
        only_end = await client.get(
            path, params={"end_date": "2026-01-10T00:00:00Z"}, headers=admin_headers
        )

        assert only_start.status_code == 400, path
        assert only_end.status_code == 400, path


@pytest.mark.asyncio
async def test_dashboard_routes_respond(client, admin_headers):
    for path in [
        "/analytics/booking-funnel",
        "/analytics/top-designs",
        "/analytics/live",
        "/analytics/trend",
    ]:
        response = await client.get(path, headers=admin_headers)
        assert response.status_code == 200, path
        assert response.json()["status"] == "success"


@pytest.mark.asyncio
async def test_periods_route(client, admin_headers):
    response = await client.get(
        "/analytics/periods",
        params={
            "start_date": "2026-01-01T00:00:00Z",
            "end_date": "2026-03-01T00:00:00Z",
            "period": "month",
        },
        headers=admin_headers,
    )

    assert response.status_code == 200
    assert [b["label"] for b in response.json()["items"]] == ["Jan 2026", "Feb 2026"]


@pytest.mark.asyncio
async def test_manual_sync_route(client, admin_headers):
    result = SyncResult(processed=2, created=2, status=SyncStatus.SUCCESS)

    with patch(
        "app.api.admin.sync.BookingSyncService.sync_appointments",
        new=AsyncMock(return_value=result),
    ) as sync:
        response = await client.post(
            "/admin/sync/bookings",
            params={"force_full_sync": "true"},
            headers=admin_headers,
        )

    assert response.status_code == 200
    assert response.json()["result"]["status"] == "SUCCESS"
    assert sync.await_args.kwargs == {"force_full_sync": True, "batch_size": None}


@pytest.mark.asyncio
async def test_sync_status_route(client, admin_headers):
    response = await client.get("/admin/sync/status", headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["sync"]["sync_type"] == "cal_bookings"


def test_json_formatter_includes_extra_fields():
    record = logging.LogRecord("app.test", logging.INFO, __file__, 1, "synced", None, None)
    record.booking_id = 42

    payload = json.loads(JSONFormatter().format(record))

    assert payload["message"] == "synced"
    assert payload["level"] == "INFO"
    assert payload["booking_id"] == 42
