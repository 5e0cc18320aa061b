"""
PlaceShare Backend — Place Repository
=======================================

What:  CRUD access to the `places` table.
Who:   PlaceService and ReconciliationService.

Query plan:
    find_by_id:         SELECT ... WHERE id = :uuid  (primary key)
    find_by_id+creator: + SELECT users WHERE id IN (...)  (selectin load)
    delete:             DELETE ... WHERE id = :uuid, rowcount checked
    delete_orphan:      + AND NOT EXISTS (creator row), decided at write time
"""

from typing import List, Optional, Set
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.exceptions import RepositoryError
from app.models.place import Place
from app.models.user import User
from app.repositories.base import store_failure


class PlaceRepository:
    """Stateless; every method takes the caller's session."""

    async def find_by_id(
        self,
        db: AsyncSession,
        place_id: UUID,
        with_creator: bool = False,
    ) -> Optional[Place]:
        """
        Returns:
            The place, or None if absent. With with_creator=True, place.creator
            is loaded (None if the creator record no longer exists).
        """
        stmt = select(Place).where(Place.id == place_id)
        if with_creator:
            stmt = stmt.options(selectinload(Place.creator)).execution_options(
                populate_existing=True
            )
        try:
            result = await db.execute(stmt)
        except SQLAlchemyError as e:
            raise store_failure("find place", e, place_id=place_id)
        return result.scalar_one_or_none()

    async def list_all(self, db: AsyncSession) -> List[Place]:
        try:
            result = await db.execute(select(Place).order_by(Place.created_at))
        except SQLAlchemyError as e:
            raise store_failure("list places", e)
        return list(result.scalars().all())

    async def save(self, db: AsyncSession, place: Place) -> Place:
        """Insert-or-update; flushes so the row exists inside the transaction."""
        try:
            db.add(place)
            await db.flush()
        except SQLAlchemyError as e:
            raise store_failure("save place", e, place_id=place.id)
        return place

    async def delete(self, db: AsyncSession, place_id: UUID) -> None:
        """
        Raises:
            RepositoryError(NOT_FOUND) if no row was deleted.
        """
        try:
            result = await db.execute(delete(Place).where(Place.id == place_id))
        except SQLAlchemyError as e:
            raise store_failure("delete place", e, place_id=place_id)
        if result.rowcount == 0:
            raise RepositoryError(
                kind=RepositoryError.NOT_FOUND,
                message="Place to delete does not exist",
                context={"place_id": str(place_id)},
            )

    async def delete_orphan(self, db: AsyncSession, place_id: UUID) -> bool:
        """
        Delete a place only if, when the DELETE runs, its creator does not
        exist. Returns False if the place is gone or has a creator.
        """
        creator = select(User.id).where(User.id == Place.creator_id).exists()
        try:
            result = await db.execute(delete(Place).where(Place.id == place_id, ~creator))
        except SQLAlchemyError as e:
            raise store_failure("delete orphaned place", e, place_id=place_id)
        return result.rowcount > 0

    async def image_paths(self, db: AsyncSession) -> Set[str]:
        """Every asset path referenced by a place."""
        try:
            result = await db.execute(select(Place.image))
        except SQLAlchemyError as e:
            raise store_failure("list place images", e)
        return set(result.scalars().all())


# ── Singleton Instance ────────────────────────────────────────────────────
place_repository = PlaceRepository()
