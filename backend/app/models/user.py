"""
PlaceShare Backend — User SQLAlchemy Models
=============================================

What:  ORM models for the `users` table and the `user_places` reference table.
Why:   A user owns an ordered collection of place references. The collection
       lives in its own table so that adding or removing one reference is a
       single INSERT / DELETE, never a read-modify-write of the whole list.
Who:   Used by UserRepository, PlaceService and ReconciliationService.

Table Design Rationale:
    - users.email is unique: it is the contact field used at registration
    - user_places.seq: autoincrement column that records insertion order
    - UNIQUE(user_id, place_id): the collection behaves as a set; appending an
      existing reference fails at the store instead of producing a duplicate
    - No foreign keys between users, places and user_places: the two-way link
      (places.creator_id ↔ user_places) is maintained by the place workflow and
      repaired by reconciliation, not by database cascades
"""

import uuid
from datetime import datetime, timezone
from typing import List, Optional, TYPE_CHECKING

from sqlalchemy import DateTime, Index, Integer, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base

if TYPE_CHECKING:
    from app.models.place import Place


class User(Base):
    """
    A registered user.

    Query Patterns:
        - Load user: SELECT ... WHERE id = :uuid (primary key)
        - Populated read: user + place_links + places via two selectin loads
        - Registration: SELECT ... WHERE email = :email (unique index)
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
        comment="Unique identifier",
    )

    name: Mapped[str] = mapped_column(String(120), nullable=False)

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        comment="Contact address, stored lower-cased",
    )

    # Relative asset path of an avatar, when the user has one
    image: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    # viewonly: writes to the collection go through UserRepository.append_place
    # and remove_place; lazy="raise" because lazy loads are not possible in async
    place_links: Mapped[List["UserPlace"]] = relationship(
        "UserPlace",
        primaryjoin="User.id == foreign(UserPlace.user_id)",
        order_by="UserPlace.seq",
        viewonly=True,
        lazy="raise",
    )

    @property
    def places(self) -> List["Place"]:
        """Populated places in insertion order (requires a populated load)."""
        return [link.place for link in self.place_links if link.place is not None]

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}')>"


class UserPlace(Base):
    """One entry of a user's places collection."""

    __tablename__ = "user_places"

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    place_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)

    place: Mapped[Optional["Place"]] = relationship(
        "Place",
        primaryjoin="foreign(UserPlace.place_id) == Place.id",
        viewonly=True,
        lazy="raise",
    )

    __table_args__ = (
        UniqueConstraint("user_id", "place_id", name="uq_user_places_user_place"),
        Index("idx_user_places_place_id", "place_id"),
    )

    def __repr__(self) -> str:
        return f"<UserPlace(user_id={self.user_id}, place_id={self.place_id}, seq={self.seq})>"
