"""Customer model - derived from synced bookings, one row per email."""

import uuid
from datetime import datetime
from typing import Optional, List

from sqlalchemy import String, DateTime, Integer
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from app.database import Base


class Customer(Base):
    """
    Studio customer.
    Upserted by attendee email whenever a new booking is mirrored.
    """

    __tablename__ = "customers"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )

    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    time_zone: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    booking_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    first_booking_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    last_booking_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

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

    bookings: Mapped[List["Booking"]] = relationship(back_populates="customer")

    def __repr__(self) -> str:
        return f"<Customer {self.email} bookings={self.booking_count}>"
