"""
Cal.com API client - bookings listing and health check.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.config import settings

logger = logging.getLogger(__name__)


class CalApiError(Exception):
    """Non-2xx response (or transport failure) from Cal.com."""

    def __init__(
        self,
        status: int,
        message: str,
        details: Optional[str] = None,
        endpoint: Optional[str] = None,
    ):
        super().__init__(message)
        self.status = status
        self.message = message
        self.details = details
        self.endpoint = endpoint

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": "CalApiError",
            "message": self.message,
            "status": self.status,
            "details": self.details,
            "endpoint": self.endpoint,
        }


class CalModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class CalAttendee(CalModel):
    id: Optional[int] = None
    email: str
    name: str = ""
    time_zone: Optional[str] = None


class CalEventType(CalModel):
    id: int
    title: str
    slug: str
    length: int
    price: Optional[float] = None
    currency: Optional[str] = None


class CalPayment(CalModel):
    id: int
    success: bool
    amount: Optional[float] = None
    currency: Optional[str] = None


class CalBooking(CalModel):
    """Booking as returned by the provider."""

    id: int
    uid: str
    title: str
    description: Optional[str] = None
    start: datetime
    end: datetime
    status: str
    attendees: List[CalAttendee] = Field(default_factory=list)
    event_type: Optional[CalEventType] = None
    payment: List[CalPayment] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class BookingPage(BaseModel):
    """
    One page of raw provider records. Records are validated one at a time
    by the caller so a single malformed booking does not sink the page.
    """
    bookings: List[Any]
    has_more: bool


class CalApiClient:
    """Thin async client for the Cal.com v2 API. No retries."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 30.0,
    ):
        self.api_key = api_key if api_key is not None else settings.cal_api_key
        self.base_url = (base_url or settings.cal_api_url).rstrip("/")
        self.transport = transport
        self.timeout = timeout

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "cal-api-version": settings.cal_api_version,
        }

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                headers=self.headers,
                timeout=self.timeout,
                transport=self.transport,
            ) as client:
                response = await client.request(method, endpoint, params=params)
        except httpx.HTTPError as e:
            logger.error(f"Cal.com request failed: {method} {endpoint}: {e}")
            raise CalApiError(0, f"Cal.com request failed: {e}", endpoint=endpoint) from e

        if response.status_code >= 400:
            logger.error(f"Cal.com HTTP error: {response.status_code} {endpoint}")
            raise CalApiError(
                response.status_code,
                f"Cal.com API error: {response.reason_phrase}",
                details=response.text,
                endpoint=endpoint,
            )

        return response.json()

    async def list_bookings(
        self,
        limit: int = 100,
        offset: int = 0,
        start_after: Optional[datetime] = None,
    ) -> BookingPage:
        """One page of bookings, unvalidated."""
        params: Dict[str, Any] = {"limit": limit, "offset": offset}
        if start_after:
            params["startAfter"] = start_after.isoformat()

        data = await self._request("GET", "/bookings", params=params)
        bookings = list(data.get("data") or [])
        has_more = bool((data.get("pagination") or {}).get("hasMore", False))
        return BookingPage(bookings=bookings, has_more=has_more)

    async def get_booking(self, booking_id: int) -> CalBooking:
        data = await self._request("GET", f"/bookings/{booking_id}")
        return CalBooking.model_validate(data.get("data", data))

    async def health_check(self) -> Dict[str, str]:
        """Ping the API. Never raises."""
        timestamp = datetime.now(timezone.utc).isoformat()
        try:
            await self._request("GET", "/ping")
            return {"status": "ok", "timestamp": timestamp}
        except CalApiError as e:
            logger.warning(f"Cal.com health check failed: {e}")
            return {"status": "error", "timestamp": timestamp}
