"""
PlaceShare Backend — Place Request/Response Schemas
=====================================================

What:  Pydantic models defining the place API contract.
Why:   Strict input validation, automatic serialization, and OpenAPI doc generation.
Who:   Used by route handlers and returned by PlaceService.

Design Decision:
    Schemas are separate from SQLAlchemy models because the API exposes
    `location` as a nested object and `creator` as a bare id, while the table
    stores flat latitude/longitude columns and creator_id.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from app.models.place import Place


# ══════════════════════════════════════════════════════════════════════════
# Shared value objects
# ══════════════════════════════════════════════════════════════════════════


class Coordinates(BaseModel):
    """Geocoder output; the only source of a place's location."""
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class PlaceUpdate(BaseModel):
    """
    Body of PATCH /api/places/{pid}.

    Only title and description are mutable; address, location, image and
    creator are fixed at creation.
    """
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=5)


class UploadedImage(BaseModel):
    """An image as handed over by the upload layer."""
    content: bytes
    content_type: Optional[str] = None
    filename: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.content)


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class PlaceResponse(BaseModel):
    """Full representation of a place."""
    id: uuid.UUID = Field(description="Unique place identifier")
    title: str
    description: str
    address: str
    location: Coordinates = Field(description="Geocoded position of the address")
    image: str = Field(description="Relative storage path of the place image")
    creator: uuid.UUID = Field(description="Id of the user who created the place")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_place(cls, place: Place) -> "PlaceResponse":
        return cls(
            id=place.id,
            title=place.title,
            description=place.description,
            address=place.address,
            location=Coordinates(latitude=place.latitude, longitude=place.longitude),
            image=place.image,
            creator=place.creator_id,
            created_at=place.created_at,
            updated_at=place.updated_at,
        )


class PlaceEnvelope(BaseModel):
    """Wrapper used by get/create/update: {"place": {...}}."""
    place: PlaceResponse


class PlaceListResponse(BaseModel):
    """Places of one user, in the order they were added."""
    places: List[PlaceResponse]


class PlaceDeleteResponse(BaseModel):
    """
    Confirmation of a delete.

    `place` is the final snapshot of the deleted record, including the
    creator id it had (which no longer references it).
    """
    message: str = Field(default="Deleted place.")
    place: PlaceResponse
