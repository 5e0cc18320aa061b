"""
PlaceShare Backend — Place Service (Workflow Orchestrator)
============================================================

What:  Get, create, update and delete places while keeping a place, its
       creator's places collection and its image file consistent.
Why:   Encapsulates the cross-entity rules in one place, independent of HTTP.
How:   Composes the Geocoder, the AssetStore and the two repositories, and
       commits its own transaction so file handling can be ordered around it.
Who:   Called by the /api/places route handlers.

Orchestration Flow (POST /api/places):
    ┌──────────┐   ┌──────────┐   ┌──────────┐   ┌──────────┐   ┌──────────────┐
    │  Filter  │──▶│ Geocode  │──▶│  Accept  │──▶│ Load user│──▶│ INSERT place │
    │  image   │   │ address  │   │  image   │   │          │   │ + reference  │
    └──────────┘   └──────────┘   └──────────┘   └──────────┘   │   COMMIT     │
                                                                └──────────────┘
    Filter or geocode fails → nothing was written, nothing to undo.
    Anything after accept fails (cancellation included) → rollback, remove the
    new image, re-raise.

Delete Ordering:
    remove reference → delete place → COMMIT → remove image (best effort).
    The image outlives the record only when the file removal itself fails;
    the reconciliation pass collects those.

Error Translation:
    RepositoryError never leaves this module. NOT_FOUND becomes NotFoundError,
    everything else becomes UnavailableError, each with the message of the
    step that failed.
"""

import logging
import uuid
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.exceptions import (
    NotFoundError,
    RepositoryError,
    UnauthorizedError,
    UnavailableError,
)
from app.models.place import Place
from app.repositories.base import commit, rollback
from app.repositories.place_repository import place_repository
from app.repositories.user_repository import user_repository
from app.schemas.place import (
    PlaceDeleteResponse,
    PlaceListResponse,
    PlaceResponse,
    UploadedImage,
)
from app.services.asset_store import AssetStore, asset_store as default_asset_store
from app.services.geocoder_base import Geocoder
from app.services.geocoding_service import geocoder as default_geocoder

logger = logging.getLogger(__name__)

PLACE_NOT_FOUND = "Could not find a place for the provided id."


class PlaceService:
    """
    Business logic layer for place operations.

    Responsibilities:
        - get_by_id() / get_by_user(): reads with not-found handling
        - create(): filter → geocode → accept image → persist both records
        - update(): owner-only edit of title and description
        - delete(): owner-only removal of both records, then the image

    Authorization always happens before any mutation.
    """

    def __init__(
        self,
        geocoder: Optional[Geocoder] = None,
        asset_store: Optional[AssetStore] = None,
        empty_user_places_is_not_found: Optional[bool] = None,
    ):
        self.geocoder = geocoder or default_geocoder
        self.asset_store = asset_store or default_asset_store
        self.empty_user_places_is_not_found = (
            empty_user_places_is_not_found
            if empty_user_places_is_not_found is not None
            else settings.empty_user_places_is_not_found
        )

    # ── Reads ─────────────────────────────────────────────────────────────

    async def get_by_id(self, db: AsyncSession, place_id: UUID) -> PlaceResponse:
        """
        Raises:
            NotFoundError: no such place (→ 404)
            UnavailableError: record store failed (→ 500)
        """
        try:
            place = await place_repository.find_by_id(db, place_id)
        except RepositoryError as e:
            raise UnavailableError(
                message="Something went wrong, could not find a place.",
                context=e.context,
            )
        if place is None:
            raise NotFoundError(resource="place", resource_id=str(place_id), message=PLACE_NOT_FOUND)
        return PlaceResponse.from_place(place)

    async def get_by_user(self, db: AsyncSession, user_id: UUID) -> PlaceListResponse:
        """
        Places created by a user, in the order they were added.

        A user without places is a NotFoundError while
        empty_user_places_is_not_found is set, otherwise an empty list.
        """
        try:
            user = await user_repository.find_by_id(db, user_id, populate=True)
        except RepositoryError as e:
            raise UnavailableError(
                message="Fetching places failed, please try again later.",
                context=e.context,
            )
        if user is None or (not user.places and self.empty_user_places_is_not_found):
            raise NotFoundError(
                resource="user",
                resource_id=str(user_id),
                message="Could not find places for the provided user id.",
            )
        return PlaceListResponse(places=[PlaceResponse.from_place(p) for p in user.places])

    # ── Create ────────────────────────────────────────────────────────────

    async def create(
        self,
        db: AsyncSession,
        user_id: UUID,
        title: str,
        description: str,
        address: str,
        image: UploadedImage,
    ) -> PlaceResponse:
        """
        Create a place owned by the authenticated user.

        Workflow Steps:
            0. Filter the image (type, size) before any external call
            1. Geocode the address (no retries)
            2. Store the image, obtaining its asset path
            3. Load the user
            4. INSERT place + APPEND reference, COMMIT

        Raises:
            UnsupportedMediaTypeError, PayloadTooLargeError, ValidationError: step 0
            GeocodingError: step 1
            FileStorageError: step 2
            NotFoundError: user does not exist
            UnavailableError: record store failed
        """
        self.asset_store.validate(image.content_type, image.size)

        coordinates = await self.geocoder.resolve(address)

        asset_path = await self.asset_store.accept(image.content, image.content_type)

        try:
            place = await self._persist_new_place(
                db,
                user_id=user_id,
                title=title,
                description=description,
                address=address,
                latitude=coordinates.latitude,
                longitude=coordinates.longitude,
                asset_path=asset_path,
            )
        except BaseException:
            await rollback(db)
            await self.asset_store.remove(asset_path)
            raise

        logger.info("Place %s created by user %s", place.id, user_id)
        return PlaceResponse.from_place(place)

    async def _persist_new_place(
        self,
        db: AsyncSession,
        user_id: UUID,
        title: str,
        description: str,
        address: str,
        latitude: float,
        longitude: float,
        asset_path: str,
    ) -> Place:
        try:
            user = await user_repository.find_by_id(db, user_id)
        except RepositoryError as e:
            raise UnavailableError(
                message="Creating place failed, please try again.",
                context=e.context,
            )
        if user is None:
            raise NotFoundError(
                resource="user",
                resource_id=str(user_id),
                message="Could not find user for provided id.",
            )

        place = Place(
            id=uuid.uuid4(),
            title=title,
            description=description,
            address=address,
            latitude=latitude,
            longitude=longitude,
            image=asset_path,
            creator_id=user.id,
        )
        try:
            await place_repository.save(db, place)
            await user_repository.append_place(db, user.id, place.id)
            await commit(db, "create place")
        except RepositoryError as e:
            raise UnavailableError(
                message="Creating place failed, please try again.",
                context=e.context,
            )
        return place

    # ── Update ────────────────────────────────────────────────────────────

    async def update(
        self,
        db: AsyncSession,
        place_id: UUID,
        user_id: UUID,
        title: str,
        description: str,
    ) -> PlaceResponse:
        """
        Change title and description. Only the creator may do this.

        Raises:
            NotFoundError, UnauthorizedError, UnavailableError
        """
        try:
            place = await place_repository.find_by_id(db, place_id)
        except RepositoryError as e:
            raise UnavailableError(
                message="Something went wrong, could not update place.",
                context=e.context,
            )
        if place is None:
            raise NotFoundError(resource="place", resource_id=str(place_id), message=PLACE_NOT_FOUND)
        if place.creator_id != user_id:
            raise UnauthorizedError(
                message="You are not allowed to edit this place.",
                context={"place_id": str(place_id), "user_id": str(user_id)},
            )

        place.title = title
        place.description = description
        try:
            await place_repository.save(db, place)
            await commit(db, "update place")
        except RepositoryError as e:
            await rollback(db)
            raise UnavailableError(
                message="Something went wrong, could not update place.",
                context=e.context,
            )
        logger.info("Place %s updated by user %s", place_id, user_id)
        return PlaceResponse.from_place(place)

    # ── Delete ────────────────────────────────────────────────────────────

    async def delete(self, db: AsyncSession, place_id: UUID, user_id: UUID) -> PlaceDeleteResponse:
        """
        Delete a place, drop it from its creator's collection, then remove its image.

        Returns:
            PlaceDeleteResponse carrying the snapshot taken before deletion.

        Raises:
            NotFoundError, UnauthorizedError, UnavailableError
        """
        try:
            place = await place_repository.find_by_id(db, place_id, with_creator=True)
        except RepositoryError as e:
            raise UnavailableError(
                message="Something went wrong, could not delete place.",
                context=e.context,
            )
        if place is None:
            raise NotFoundError(
                resource="place",
                resource_id=str(place_id),
                message="Could not find a place with the provided ID.",
            )

        creator_id = place.creator.id if place.creator is not None else place.creator_id
        if creator_id != user_id:
            raise UnauthorizedError(
                message="You are not allowed to delete this place.",
                context={"place_id": str(place_id), "user_id": str(user_id)},
            )

        snapshot = PlaceResponse.from_place(place)
        asset_path = place.image

        try:
            await user_repository.remove_place(db, creator_id, place_id)
            await place_repository.delete(db, place_id)
            await commit(db, "delete place")
        except RepositoryError as e:
            await rollback(db)
            if e.kind == RepositoryError.NOT_FOUND:
                raise NotFoundError(
                    resource="place",
                    resource_id=str(place_id),
                    message="Could not find a place with the provided ID.",
                )
            raise UnavailableError(
                message="Something went wrong, could not delete place.",
                context=e.context,
            )

        logger.info("Place %s deleted by user %s", place_id, user_id)
        await self.asset_store.remove(asset_path)
        return PlaceDeleteResponse(place=snapshot)


# ── Singleton Instance ────────────────────────────────────────────────────
place_service = PlaceService()
