"""AnalyticsEvent model - one row per tracked user action."""

import uuid
from datetime import datetime, timezone
from typing import Optional, Dict, Any

from sqlalchemy import String, DateTime, Float, Text, JSON, Index
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AnalyticsEvent(Base):
    """
    Immutable analytics fact.

    `category` holds an EventCategory value. Category-specific fields
    (booking step, design id, error code, ...) live in the `metadata`
    JSON column, exposed on the model as `attributes`.
    """

    __tablename__ = "analytics_events"
    __table_args__ = (
        Index("ix_analytics_events_category_timestamp", "category", "timestamp"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
        index=True,
    )

    user_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, index=True)
    session_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, index=True)

    category: Mapped[str] = mapped_column(String(20), nullable=False)
    action: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    label: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    value: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    # Context
    path: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    referrer: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    device_type: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    browser: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    os: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    # "metadata" is reserved on declarative classes
    attributes: Mapped[Dict[str, Any]] = mapped_column(
        "metadata",
        JSON,
        nullable=False,
        default=dict,
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": str(self.id),
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "user_id": self.user_id,
            "session_id": self.session_id,
            "category": self.category,
            "action": self.action,
            "label": self.label,
            "value": self.value,
            "path": self.path,
            "referrer": self.referrer,
            "device_type": self.device_type,
            "browser": self.browser,
            "os": self.os,
            "metadata": self.attributes,
        }

    def __repr__(self) -> str:
        return f"<AnalyticsEvent {self.category}:{self.action} session={self.session_id}>"
