"""CalWebhookEvent model - raw Cal.com webhook deliveries."""

import uuid
from datetime import datetime, timezone
from typing import Optional, Dict, Any

from sqlalchemy import String, DateTime, Boolean, Integer, Text, BigInteger, JSON
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class CalWebhookEvent(Base):
    """
    Stored before processing so failed deliveries can be inspected.
    Rows older than the retention window are deleted by a daily job.
    """

    __tablename__ = "cal_webhook_events"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    trigger_event: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    cal_booking_id: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    cal_booking_uid: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, index=True)

    payload: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False)

    signature: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    ip_address: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    processed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    processed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    processing_error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    retry_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    received_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<CalWebhookEvent {self.trigger_event} uid={self.cal_booking_uid}>"
