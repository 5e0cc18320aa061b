"""
PlaceShare Backend — Route Dependencies
=========================================

What:  FastAPI dependencies shared by the routers.

Authentication:
    Token verification happens upstream. The auth layer forwards the verified
    user id in the X-User-Id header; this module only parses it.
"""

from typing import Optional
from uuid import UUID

from fastapi import Header

from app.exceptions import UnauthorizedError
from app.services.place_service import PlaceService, place_service
from app.services.user_service import UserService, user_service


async def get_authenticated_user_id(
    x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
) -> UUID:
    """
    Raises:
        UnauthorizedError: header missing or not a UUID (→ 401)
    """
    if not x_user_id:
        raise UnauthorizedError(message="Authentication failed!")
    try:
        return UUID(x_user_id)
    except ValueError:
        raise UnauthorizedError(
            message="Authentication failed!",
            context={"x_user_id": x_user_id[:64]},
        )


def get_place_service() -> PlaceService:
    return place_service


def get_user_service() -> UserService:
    return user_service
