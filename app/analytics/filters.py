"""Filter options for analytics event queries."""

import math
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, model_validator

from app.analytics.events import DeviceType, EventCategory

# Columns callers may sort on
SortField = Literal[
    "timestamp",
    "category",
    "action",
    "path",
    "user_id",
    "session_id",
    "device_type",
    "value",
]


class AnalyticsFilter(BaseModel):
    """Conjunctive filter + pagination for the event query."""

    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    categories: Optional[List[EventCategory]] = None
    actions: Optional[List[str]] = None
    user_id: Optional[str] = None
    path: Optional[str] = None
    device_type: Optional[DeviceType] = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=50, ge=1, le=100)
    sort_by: SortField = "timestamp"
    sort_dir: Literal["asc", "desc"] = "desc"

    @model_validator(mode="after")
    def check_date_range(self) -> "AnalyticsFilter":
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("start_date must be before end_date")
        return self

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    page_count: int

    @classmethod
    def build(cls, total: int, page: int, limit: int) -> "Pagination":
        return cls(
            total=total,
            page=page,
            limit=limit,
            page_count=math.ceil(total / limit),
        )
