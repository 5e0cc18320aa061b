"""
PlaceShare Backend — User Repository
======================================

What:  CRUD access to `users` and to each user's places collection (`user_places`).
Who:   PlaceService, UserService and ReconciliationService.

Collection Semantics:
    append_place() is one INSERT and remove_place() is one DELETE. Two
    concurrent creates by the same user each insert their own row, so neither
    can overwrite the other's reference. The UNIQUE(user_id, place_id)
    constraint makes a duplicate append fail instead of duplicating the entry.
"""

from typing import List, Optional
from uuid import UUID

from sqlalchemy import Uuid, delete, insert, literal, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.exceptions import RepositoryError
from app.models.place import Place
from app.models.user import User, UserPlace
from app.repositories.base import store_failure


def _owned_by(user_id: UUID, place_id: UUID):
    """EXISTS (a place with this id created by this user)."""
    return select(Place.id).where(Place.id == place_id, Place.creator_id == user_id).exists()


class UserRepository:
    """Stateless; every method takes the caller's session."""

    async def find_by_id(
        self,
        db: AsyncSession,
        user_id: UUID,
        populate: bool = False,
    ) -> Optional[User]:
        """
        Load a user with its place references.

        Args:
            populate: Also resolve each reference into its full Place record
                      (user.places). References to missing places are skipped.
        """
        links = selectinload(User.place_links)
        if populate:
            links = links.selectinload(UserPlace.place)
        stmt = (
            select(User)
            .where(User.id == user_id)
            .options(links)
            .execution_options(populate_existing=True)
        )
        try:
            result = await db.execute(stmt)
        except SQLAlchemyError as e:
            raise store_failure("find user", e, user_id=user_id)
        return result.scalar_one_or_none()

    async def find_by_email(self, db: AsyncSession, email: str) -> Optional[User]:
        try:
            result = await db.execute(select(User).where(User.email == email))
        except SQLAlchemyError as e:
            raise store_failure("find user by email", e)
        return result.scalar_one_or_none()

    async def list_all(self, db: AsyncSession) -> List[User]:
        try:
            result = await db.execute(
                select(User).options(selectinload(User.place_links)).order_by(User.created_at)
            )
        except SQLAlchemyError as e:
            raise store_failure("list users", e)
        return list(result.scalars().all())

    async def save(self, db: AsyncSession, user: User) -> User:
        try:
            db.add(user)
            await db.flush()
        except SQLAlchemyError as e:
            raise store_failure("save user", e, user_id=user.id)
        return user

    async def delete(self, db: AsyncSession, user_id: UUID) -> None:
        """
        Delete a user and its reference rows. Places are left to the caller.

        Raises:
            RepositoryError(NOT_FOUND) if the user does not exist.
        """
        try:
            await db.execute(delete(UserPlace).where(UserPlace.user_id == user_id))
            result = await db.execute(delete(User).where(User.id == user_id))
        except SQLAlchemyError as e:
            raise store_failure("delete user", e, user_id=user_id)
        if result.rowcount == 0:
            raise RepositoryError(
                kind=RepositoryError.NOT_FOUND,
                message="User to delete does not exist",
                context={"user_id": str(user_id)},
            )

    # ── Places collection ─────────────────────────────────────────────────

    async def append_place(self, db: AsyncSession, user_id: UUID, place_id: UUID) -> None:
        """Append one reference. A duplicate raises RepositoryError."""
        try:
            await db.execute(insert(UserPlace).values(user_id=user_id, place_id=place_id))
        except SQLAlchemyError as e:
            raise store_failure("append place reference", e, user_id=user_id, place_id=place_id)

    async def remove_place(self, db: AsyncSession, user_id: UUID, place_id: UUID) -> bool:
        """Remove one reference. Returns False if it was not there."""
        try:
            result = await db.execute(
                delete(UserPlace).where(
                    UserPlace.user_id == user_id,
                    UserPlace.place_id == place_id,
                )
            )
        except SQLAlchemyError as e:
            raise store_failure("remove place reference", e, user_id=user_id, place_id=place_id)
        return result.rowcount > 0

    async def remove_stale_reference(self, db: AsyncSession, user_id: UUID, place_id: UUID) -> bool:
        """
        Remove a reference only if, when the DELETE runs, no place with that
        id is created by that user. Returns False if nothing was removed.
        """
        stmt = delete(UserPlace).where(
            UserPlace.user_id == user_id,
            UserPlace.place_id == place_id,
            ~_owned_by(user_id, place_id),
        )
        try:
            result = await db.execute(stmt)
        except SQLAlchemyError as e:
            raise store_failure("remove stale place reference", e, user_id=user_id, place_id=place_id)
        return result.rowcount > 0

    async def append_missing_reference(self, db: AsyncSession, user_id: UUID, place_id: UUID) -> bool:
        """
        Append a reference only if, when the INSERT runs, the place exists with
        that creator and the reference is absent. Returns False otherwise.
        """
        present = (
            select(UserPlace.seq)
            .where(UserPlace.user_id == user_id, UserPlace.place_id == place_id)
            .exists()
        )
        source = select(
            literal(user_id, Uuid),
            literal(place_id, Uuid),
        ).where(_owned_by(user_id, place_id), ~present)
        stmt = insert(UserPlace).from_select(["user_id", "place_id"], source)
        try:
            result = await db.execute(stmt)
        except SQLAlchemyError as e:
            raise store_failure("append missing place reference", e, user_id=user_id, place_id=place_id)
        return result.rowcount > 0

    async def place_ids(self, db: AsyncSession, user_id: UUID) -> List[UUID]:
        """The user's place ids in insertion order."""
        try:
            result = await db.execute(
                select(UserPlace.place_id)
                .where(UserPlace.user_id == user_id)
                .order_by(UserPlace.seq)
            )
        except SQLAlchemyError as e:
            raise store_failure("list place references", e, user_id=user_id)
        return list(result.scalars().all())

    async def list_references(self, db: AsyncSession) -> List[UserPlace]:
        try:
            result = await db.execute(select(UserPlace).order_by(UserPlace.seq))
        except SQLAlchemyError as e:
            raise store_failure("list all place references", e)
        return list(result.scalars().all())


# ── Singleton Instance ────────────────────────────────────────────────────
user_repository = UserRepository()
