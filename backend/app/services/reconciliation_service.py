"""
PlaceShare Backend — Reconciliation Service
=============================================

What:  Repairs drift between places, user place references and stored images.
Why:   The place workflow keeps all three consistent, but a crash between a
       commit and a file removal (or a manual DB edit) can still leave drift.
How:   One idempotent pass; running it twice in a row changes nothing the
       second time.
When:  On demand, or every `reconcile_interval_seconds` from the app lifespan.

Repairs (in order):
    1. Dangling references   user_places row → missing place, or wrong creator → removed
    2. Orphaned places       place whose creator no longer exists → deleted, image removed
    3. Missing references    place absent from its creator's collection → appended
    4. Orphaned images       unreferenced file older than the grace window → removed

The grace window protects images written by creates that have not committed yet.
"""

import asyncio
import logging
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import settings
from app.exceptions import PlaceShareError
from app.repositories.base import commit, rollback
from app.repositories.place_repository import place_repository
from app.repositories.user_repository import user_repository
from app.services.asset_store import AssetStore, asset_store as default_asset_store

logger = logging.getLogger(__name__)


class ReconciliationReport(BaseModel):
    """What one pass changed."""
    references_added: List[UUID] = Field(default_factory=list, description="Place ids re-appended")
    references_removed: List[UUID] = Field(default_factory=list, description="Place ids dropped")
    places_deleted: List[UUID] = Field(default_factory=list)
    assets_removed: List[str] = Field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(
            self.references_added
            or self.references_removed
            or self.places_deleted
            or self.assets_removed
        )


class ReconciliationService:

    def __init__(
        self,
        asset_store: Optional[AssetStore] = None,
        asset_grace_seconds: Optional[int] = None,
    ):
        self.asset_store = asset_store or default_asset_store
        self.asset_grace_seconds = (
            asset_grace_seconds
            if asset_grace_seconds is not None
            else settings.reconcile_asset_grace_seconds
        )

    async def reconcile(self, db: AsyncSession) -> ReconciliationReport:
        """
        Run one repair pass and commit it.

        The reads below are a plan, not a snapshot: creates and deletes may
        commit between them. Each repair re-checks its condition inside the
        statement that performs it, and only repairs that changed a row are
        reported.

        Raises:
            RepositoryError: the record store failed; nothing was committed
        """
        report = ReconciliationReport()

        try:
            places = await place_repository.list_all(db)
            user_ids = {user.id for user in await user_repository.list_all(db)}
            references = await user_repository.list_references(db)

            places_by_id = {place.id: place for place in places}
            linked = set()

            for ref in references:
                place = places_by_id.get(ref.place_id)
                if place is not None and place.creator_id == ref.user_id:
                    linked.add((ref.user_id, ref.place_id))
                elif await user_repository.remove_stale_reference(db, ref.user_id, ref.place_id):
                    report.references_removed.append(ref.place_id)

            released_images = []
            for place in places:
                if place.creator_id not in user_ids:
                    if await place_repository.delete_orphan(db, place.id):
                        report.places_deleted.append(place.id)
                        released_images.append(place.image)
                elif (place.creator_id, place.id) not in linked:
                    if await user_repository.append_missing_reference(db, place.creator_id, place.id):
                        report.references_added.append(place.id)

            await commit(db, "reconcile")
        except BaseException:
            await rollback(db)
            raise

        for image in released_images:
            await self.asset_store.remove(image)
            report.assets_removed.append(image)

        referenced = await place_repository.image_paths(db)
        for asset in self.asset_store.list_assets():
            if asset.path in referenced:
                continue
            if self.asset_store.age_seconds(asset) < self.asset_grace_seconds:
                continue
            await self.asset_store.remove(asset.path)
            report.assets_removed.append(asset.path)

        if report.changed:
            logger.warning(
                "Reconciliation repaired drift: +%d refs, -%d refs, %d places deleted, %d assets removed",
                len(report.references_added),
                len(report.references_removed),
                len(report.places_deleted),
                len(report.assets_removed),
            )
        else:
            logger.debug("Reconciliation found nothing to repair")
        return report

    async def run_periodically(
        self,
        session_factory: async_sessionmaker,
        interval_seconds: float,
    ) -> None:
        """
        Reconcile every `interval_seconds` until cancelled.

        A failed pass is logged and the loop keeps going.
        """
        logger.info("Reconciliation scheduled every %s seconds", interval_seconds)
        while True:
            await asyncio.sleep(interval_seconds)
            try:
                async with session_factory() as db:
                    await self.reconcile(db)
            except PlaceShareError as e:
                logger.error("Reconciliation pass failed: %s", e.message, extra={"context": e.context})
            except Exception as e:
                logger.error("Reconciliation pass crashed: %s", str(e), exc_info=True)


reconciliation_service = ReconciliationService()
