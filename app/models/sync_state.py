"""SyncState model - bookkeeping for incremental provider syncs."""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import String, DateTime, Integer, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.database import Base


class SyncStatus(str, Enum):
    """Outcome of the last sync run."""
    SUCCESS = "SUCCESS"
    PARTIAL_SUCCESS = "PARTIAL_SUCCESS"
    ERROR = "ERROR"


class SyncState(Base):
    """
    One row per sync type (e.g. "cal_bookings").
    `last_sync_at` is the cursor for the next delta sync.
    """

    __tablename__ = "sync_states"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    sync_type: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        nullable=False,
    )

    last_sync_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    records_processed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    records_errored: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    last_run_status: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    last_error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<SyncState {self.sync_type} {self.last_run_status}>"
