"""GalleryItem model - tattoo designs shown in the public gallery."""

from datetime import datetime
from typing import Optional, List, Dict, Any

from sqlalchemy import String, DateTime, Text, JSON
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.database import Base


class GalleryItem(Base):
    """
    A design in the gallery.
    Ids are the string design ids the web client puts in gallery events.
    """

    __tablename__ = "gallery_items"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    tags: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    artist: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "image_url": self.image_url,
            "tags": self.tags or [],
            "artist": self.artist,
        }

    def __repr__(self) -> str:
        return f"<GalleryItem {self.id}>"
