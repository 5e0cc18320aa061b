"""
PlaceShare Backend — User Service
===================================

What:  Registers users and reads user profiles with their place ids.
Who:   Called by the /api/users route handlers.

Credentials are out of scope: users are created by an upstream identity
layer that then calls register() with the profile data.
"""

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import ConflictError, NotFoundError, RepositoryError, UnavailableError
from app.models.user import User
from app.repositories.base import commit, rollback
from app.repositories.user_repository import user_repository
from app.schemas.user import UserListResponse, UserResponse

logger = logging.getLogger(__name__)


class UserService:

    async def register(
        self,
        db: AsyncSession,
        name: str,
        email: str,
        image: Optional[str] = None,
    ) -> UserResponse:
        """
        Create a user. Emails are stored lower-cased and must be unique.

        Raises:
            ConflictError: email already registered (→ 409)
            UnavailableError: record store failed
        """
        normalized_email = email.strip().lower()
        try:
            existing = await user_repository.find_by_email(db, normalized_email)
            if existing is not None:
                raise ConflictError(
                    message="User exists already, please login instead.",
                    context={"email": normalized_email},
                )
            user = User(name=name.strip(), email=normalized_email, image=image)
            await user_repository.save(db, user)
            await commit(db, "register user")
        except RepositoryError as e:
            await rollback(db)
            # Lost a race against a concurrent register with the same email
            if await self._email_taken(db, normalized_email):
                raise ConflictError(
                    message="User exists already, please login instead.",
                    context={"email": normalized_email},
                )
            raise UnavailableError(
                message="Signing up failed, please try again later.",
                context=e.context,
            )

        logger.info("User %s registered", user.id)
        return UserResponse(
            id=user.id,
            name=user.name,
            email=user.email,
            image=user.image,
            created_at=user.created_at,
            places=[],
        )

    async def get(self, db: AsyncSession, user_id: UUID) -> UserResponse:
        try:
            user = await user_repository.find_by_id(db, user_id)
        except RepositoryError as e:
            raise UnavailableError(
                message="Fetching user failed, please try again later.",
                context=e.context,
            )
        if user is None:
            raise NotFoundError(resource="user", resource_id=str(user_id))
        return UserResponse.from_user(user)

    async def list_users(self, db: AsyncSession) -> UserListResponse:
        try:
            users = await user_repository.list_all(db)
        except RepositoryError as e:
            raise UnavailableError(
                message="Fetching users failed, please try again later.",
                context=e.context,
            )
        return UserListResponse(users=[UserResponse.from_user(u) for u in users])

    @staticmethod
    async def _email_taken(db: AsyncSession, email: str) -> bool:
        try:
            return await user_repository.find_by_email(db, email) is not None
        except RepositoryError:
            return False


user_service = UserService()
