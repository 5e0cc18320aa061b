"""
PlaceShare Backend — Place SQLAlchemy Model
=============================================

What:  ORM model representing the `places` table.
Why:   Maps Python objects to database rows for type-safe database operations.
Who:   Used by PlaceRepository, PlaceService and by Alembic for schema management.

Table Design Rationale:
    - UUID primary key: opaque, non-sequential identifiers
    - latitude/longitude: written only from geocoder output, never from the client
    - image: relative asset path (images/<uuid>.<ext>), portable across environments
    - creator_id: immutable after insert; indexed for reconciliation scans
"""

import uuid
from datetime import datetime, timezone
from typing import Dict, TYPE_CHECKING

from sqlalchemy import DateTime, Float, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base

if TYPE_CHECKING:
    from app.models.user import User


class Place(Base):
    """
    A user-created place with a geocoded position and an image.

    Lifecycle:
        1. Created by PlaceService.create together with its user_places entry
        2. Title/description may be edited by the creator
        3. Deleted by the creator; the image is removed after the delete commits
    """

    __tablename__ = "places"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    address: Mapped[str] = mapped_column(String(500), nullable=False)

    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)

    image: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Relative path from storage root to the uploaded image",
    )

    creator_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    creator: Mapped["User"] = relationship(
        "User",
        primaryjoin="foreign(Place.creator_id) == User.id",
        viewonly=True,
        lazy="raise",
    )

    __table_args__ = (
        Index("idx_places_creator_id", "creator_id"),
    )

    @property
    def location(self) -> Dict[str, float]:
        return {"latitude": self.latitude, "longitude": self.longitude}

    def __repr__(self) -> str:
        return f"<Place(id={self.id}, title='{self.title}', creator_id={self.creator_id})>"
