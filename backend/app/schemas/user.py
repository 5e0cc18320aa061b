"""
PlaceShare Backend — User Request/Response Schemas
====================================================
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field

from app.models.user import User


class UserCreate(BaseModel):
    """Body of POST /api/users."""
    name: str = Field(min_length=1, max_length=120)
    email: EmailStr
    image: Optional[str] = Field(default=None, max_length=255)


class UserResponse(BaseModel):
    id: uuid.UUID
    name: str
    email: str
    image: Optional[str] = None
    created_at: Optional[datetime] = None
    places: List[uuid.UUID] = Field(
        default_factory=list,
        description="Ids of the user's places in insertion order",
    )

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        """Requires user.place_links to be loaded."""
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            image=user.image,
            created_at=user.created_at,
            places=[link.place_id for link in user.place_links],
        )


class UserEnvelope(BaseModel):
    user: UserResponse


class UserListResponse(BaseModel):
    users: List[UserResponse]
