"""
PlaceShare Backend — User Route Handlers
==========================================

What:  /api/users endpoints: register a profile, list users, read one user.
"""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.routes.dependencies import get_user_service
from app.schemas.common import ErrorResponse
from app.schemas.user import UserCreate, UserEnvelope, UserListResponse
from app.services.user_service import UserService

router = APIRouter(prefix="/api/users", tags=["Users"])


@router.post(
    "",
    status_code=201,
    response_model=UserEnvelope,
    responses={409: {"description": "Email already registered", "model": ErrorResponse}},
    summary="Register a user profile",
)
async def register_user(
    body: UserCreate,
    db: AsyncSession = Depends(get_db_session),
    service: UserService = Depends(get_user_service),
) -> UserEnvelope:
    user = await service.register(db, name=body.name, email=body.email, image=body.image)
    return UserEnvelope(user=user)


@router.get("", response_model=UserListResponse, summary="List users")
async def list_users(
    db: AsyncSession = Depends(get_db_session),
    service: UserService = Depends(get_user_service),
) -> UserListResponse:
    return await service.list_users(db)


@router.get(
    "/{uid}",
    response_model=UserEnvelope,
    responses={404: {"description": "User not found", "model": ErrorResponse}},
    summary="Get a user with its place ids",
)
async def get_user(
    uid: UUID,
    db: AsyncSession = Depends(get_db_session),
    service: UserService = Depends(get_user_service),
) -> UserEnvelope:
    user = await service.get(db, uid)
    return UserEnvelope(user=user)
