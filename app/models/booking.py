"""Booking model - local mirror of Cal.com bookings."""

import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import String, DateTime, ForeignKey, Integer, Numeric, Boolean, Text, BigInteger
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from app.database import Base


class BookingStatus(str, Enum):
    """Provider statuses plus the ones set locally from webhooks."""
    ACCEPTED = "ACCEPTED"
    PENDING = "PENDING"
    CANCELLED = "CANCELLED"
    REJECTED = "REJECTED"
    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"

    @classmethod
    def from_provider(cls, value: Optional[str]) -> "BookingStatus":
        if not value:
            return cls.PENDING
        try:
            return cls(value.upper())
        except ValueError:
            return cls.PENDING


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class Booking(Base):
    """
    Mirror of a scheduling-provider booking.
    `cal_booking_id` is the provider id and the upsert key.
    """

    __tablename__ = "bookings"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    cal_booking_id: Mapped[int] = mapped_column(
        BigInteger,
        unique=True,
        nullable=False,
        index=True,
    )
    cal_booking_uid: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=BookingStatus.PENDING.value,
        index=True,
    )

    # Primary attendee
    attendee_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    attendee_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, index=True)
    attendee_time_zone: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    # Event type
    event_type_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    event_type_title: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    event_type_slug: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    event_length: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # minutes
    price: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    currency: Mapped[Optional[str]] = mapped_column(String(3), nullable=True)

    # Payment
    is_paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    payment_status: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    payment_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    payment_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    payment_currency: Mapped[Optional[str]] = mapped_column(String(3), nullable=True)

    # Lifecycle timestamps set from webhooks
    confirmed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    rescheduled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    internal_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    customer_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("customers.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Provider timestamps
    provider_created_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    provider_updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    customer: Mapped[Optional["Customer"]] = relationship(back_populates="bookings")

    def __repr__(self) -> str:
        return f"<Booking {self.cal_booking_id} {self.status}>"
