"""
Analytics event definitions.

Incoming events are a tagged union discriminated on `category`. Each
variant knows which of its fields belong in the per-category metadata
bag, so storage never has to look fields up by name.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel
from pydantic_core import to_jsonable_python


class EventCategory(str, Enum):
    """Fixed set of analytics categories."""

    PAGE_VIEW = "page_view"
    INTERACTION = "interaction"
    BOOKING = "booking"
    GALLERY = "gallery"
    ADMIN = "admin"
    CLIENT = "client"
    CONVERSION = "conversion"
    ERROR = "error"
    SYSTEM = "system"


class DeviceType(str, Enum):
    DESKTOP = "desktop"
    TABLET = "tablet"
    MOBILE = "mobile"


class BookingStep(str, Enum):
    """
    Booking funnel steps, in funnel order.
    `abandon` is last so the funnel also reports payment→abandon style drop.
    """

    START = "start"
    SELECT_SERVICE = "select_service"
    SELECT_DATE = "select_date"
    ENTER_DETAILS = "enter_details"
    PAYMENT = "payment"
    COMPLETE = "complete"
    ABANDON = "abandon"


GALLERY_VIEW_ACTION = "view"

GalleryAction = Literal[
    "view", "filter", "search", "open_details", "share", "favorite",
    "unfavorite", "zoom", "swipe", "download", "request_similar",
]

ConversionAction = Literal[
    "signup", "book_appointment", "purchase", "contact_request",
    "newsletter_signup", "download_asset",
]


class _EventModel(BaseModel):
    """Accepts both camelCase (web client) and snake_case keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=False,
    )


class BaseEvent(_EventModel):
    """Fields shared by every analytics event."""

    timestamp: Optional[datetime] = None
    user_id: Optional[str] = None
    session_id: Optional[str] = None

    category: EventCategory
    action: str = Field(min_length=1, max_length=100)
    label: Optional[str] = None
    value: Optional[float] = None

    path: Optional[str] = None
    referrer: Optional[str] = None
    device_type: Optional[DeviceType] = None
    browser: Optional[str] = None
    os: Optional[str] = None

    def metadata_fields(self) -> Dict[str, Any]:
        """Category-specific fields for the metadata bag."""
        return {}


class PageViewEvent(BaseEvent):
    category: Literal["page_view"] = "page_view"
    action: Literal["view"] = "view"
    page_title: Optional[str] = None
    page_type: Optional[str] = None
    load_time: Optional[float] = None

    def metadata_fields(self) -> Dict[str, Any]:
        return {
            "pageTitle": self.page_title,
            "pageType": self.page_type,
            "loadTime": self.load_time,
        }


class Position(_EventModel):
    x: Optional[float] = None
    y: Optional[float] = None


class InteractionEvent(BaseEvent):
    category: Literal["interaction"] = "interaction"
    element_id: Optional[str] = None
    element_type: Optional[str] = None
    position: Optional[Position] = None

    def metadata_fields(self) -> Dict[str, Any]:
        return {
            "elementId": self.element_id,
            "elementType": self.element_type,
            "position": self.position,
        }


class BookingEvent(BaseEvent):
    category: Literal["booking"] = "booking"
    action: BookingStep
    booking_id: Optional[str] = None
    service_id: Optional[str] = None
    service_name: Optional[str] = None
    appointment_date: Optional[datetime] = None
    step: Optional[int] = None
    total_steps: Optional[int] = None
    time_spent: Optional[float] = None

    def metadata_fields(self) -> Dict[str, Any]:
        return {
            "bookingId": self.booking_id,
            "serviceId": self.service_id,
            "serviceName": self.service_name,
            "appointmentDate": self.appointment_date,
            "step": self.step,
            "totalSteps": self.total_steps,
            "timeSpent": self.time_spent,
        }


class GalleryEvent(BaseEvent):
    category: Literal["gallery"] = "gallery"
    action: GalleryAction
    design_id: Optional[str] = None
    design_type: Optional[str] = None
    artist: Optional[str] = None
    tags: Optional[List[str]] = None
    position: Optional[int] = None  # position in list
    view_time: Optional[float] = None  # ms

    def metadata_fields(self) -> Dict[str, Any]:
        return {
            "designId": self.design_id,
            "designType": self.design_type,
            "artist": self.artist,
            "tags": self.tags,
            "position": self.position,
            "viewTime": self.view_time,
        }


class ConversionEvent(BaseEvent):
    category: Literal["conversion"] = "conversion"
    action: ConversionAction
    conversion_id: Optional[str] = None
    conversion_value: Optional[float] = None
    conversion_source: Optional[str] = None
    conversion_medium: Optional[str] = None
    coupon_code: Optional[str] = None

    def metadata_fields(self) -> Dict[str, Any]:
        return {
            "conversionId": self.conversion_id,
            "conversionValue": self.conversion_value,
            "conversionSource": self.conversion_source,
            "conversionMedium": self.conversion_medium,
            "couponCode": self.coupon_code,
        }


class ErrorEvent(BaseEvent):
    category: Literal["error"] = "error"
    action: Literal["error"] = "error"
    error_code: Optional[str] = None
    error_message: str
    error_stack: Optional[str] = None
    component_name: Optional[str] = None
    severity: Optional[Literal["low", "medium", "high", "critical"]] = None

    def metadata_fields(self) -> Dict[str, Any]:
        return {
            "errorCode": self.error_code,
            "errorMessage": self.error_message,
            "errorStack": self.error_stack,
            "componentName": self.component_name,
            "severity": self.severity,
        }


class GenericEvent(BaseEvent):
    """admin / client / system events carry no extra metadata."""

    category: Literal["admin", "client", "system"]


AnalyticsEventIn = Annotated[
    Union[
        PageViewEvent,
        InteractionEvent,
        BookingEvent,
        GalleryEvent,
        ConversionEvent,
        ErrorEvent,
        GenericEvent,
    ],
    Field(discriminator="category"),
]

analytics_event_adapter: TypeAdapter[AnalyticsEventIn] = TypeAdapter(AnalyticsEventIn)


def parse_event(data: Dict[str, Any]) -> BaseEvent:
    """Validate a raw payload into the matching event variant."""
    return analytics_event_adapter.validate_python(data)


def extract_metadata(event: BaseEvent) -> Dict[str, Any]:
    """
    Build the metadata bag for an event.

    Absent fields come out as None. The JSON round trip leaves only plain
    values (dates become ISO strings, nested models become dicts) and
    detaches the bag from the event object.
    """
    return json.loads(json.dumps(to_jsonable_python(event.metadata_fields())))
