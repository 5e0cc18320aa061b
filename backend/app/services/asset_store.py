"""
PlaceShare Backend — Asset Store
==================================

What:  Validates, stores and removes the image files that back places.
Why:   Centralizes all file system operations so the place workflow only ever
       deals in relative asset paths.
How:   Filters the declared content type and size, names files with a UUID4
       plus the extension mapped from the validated type, and writes them under
       <storage_root>/images with async I/O.
Who:   Called by PlaceService (create/delete) and ReconciliationService.

Lifecycle Rules:
    1. validate() is the filter step: type allow-list, size limit, non-empty
    2. accept() re-derives the extension from the type while naming, so an
       unmapped type can never produce an unlabelled file on disk
    3. remove() is idempotent and best-effort: a missing file is success,
       other I/O errors are retried briefly and then only logged

Directory Structure:
    uploads/
    └── images/
        ├── 0b4c6f0e8e2f4a6c9d3e1f2a3b4c5d6e.png
        └── 9f8e7d6c5b4a39281706f5e4d3c2b1a0.jpeg
"""

import logging
import time
import uuid
from pathlib import Path
from typing import List, NamedTuple, Optional

import aiofiles
import aiofiles.os
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from app.config import settings
from app.exceptions import (
    FileStorageError,
    PayloadTooLargeError,
    UnsupportedMediaTypeError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# ── Allowed File Types ────────────────────────────────────────────────────
# Declared MIME type → extension written to disk
MIME_TYPE_MAP = {
    "image/png": "png",
    "image/jpeg": "jpeg",
    "image/jpg": "jpg",
}

IMAGES_DIR = "images"


class StoredAsset(NamedTuple):
    path: str
    modified_at: float


def normalize_content_type(content_type: Optional[str]) -> str:
    """'Image/PNG; charset=binary' → 'image/png'."""
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


class AssetStore:
    """
    Manages the uploaded image lifecycle on durable storage.

    Every asset path handed out or accepted by this class is relative to the
    storage root and lives inside the images directory; anything resolving
    elsewhere is refused.
    """

    def __init__(
        self,
        storage_root: Optional[str] = None,
        max_size: Optional[int] = None,
        cleanup_attempts: Optional[int] = None,
        cleanup_wait: Optional[float] = None,
    ):
        """
        Args:
            storage_root: Override settings.storage_root (used in tests).
            max_size: Override settings.max_upload_size.
            cleanup_attempts: Override settings.asset_cleanup_attempts.
            cleanup_wait: Override settings.asset_cleanup_wait (seconds).
        """
        self.storage_root = Path(storage_root or settings.storage_root).resolve()
        self.images_dir = self.storage_root / IMAGES_DIR
        self.max_size = max_size if max_size is not None else settings.max_upload_size
        self.cleanup_attempts = cleanup_attempts or settings.asset_cleanup_attempts
        self.cleanup_wait = (
            cleanup_wait if cleanup_wait is not None else settings.asset_cleanup_wait
        )
        self.images_dir.mkdir(parents=True, exist_ok=True)
        logger.info("AssetStore initialized with images_dir=%s", self.images_dir)

    # ── Validation ────────────────────────────────────────────────────────

    def validate(self, content_type: Optional[str], size: int) -> str:
        """
        Filter an upload before anything is written or looked up.

        Returns:
            The normalized content type.

        Raises:
            UnsupportedMediaTypeError: type not in the allow-list
            PayloadTooLargeError: more than max_size bytes
            ValidationError: empty upload
        """
        normalized = normalize_content_type(content_type)
        if normalized not in MIME_TYPE_MAP:
            raise UnsupportedMediaTypeError(
                content_type=content_type,
                allowed=sorted(MIME_TYPE_MAP),
            )
        if size > self.max_size:
            raise PayloadTooLargeError(max_size=self.max_size, actual_size=size)
        if size == 0:
            raise ValidationError(message="The uploaded image is empty.", field="image")
        return normalized

    def _extension_for(self, content_type: str) -> str:
        ext = MIME_TYPE_MAP.get(content_type)
        if not ext:
            raise UnsupportedMediaTypeError(content_type=content_type)
        return ext

    def resolve_path(self, asset_path: str) -> Path:
        """
        Map a relative asset path to its absolute location.

        Raises:
            ValidationError unless the path names a file directly inside the
            images directory.
        """
        candidate = (self.storage_root / asset_path).resolve()
        if candidate.parent != self.images_dir:
            raise ValidationError(
                message="Invalid asset path",
                context={"asset_path": asset_path},
            )
        return candidate

    # ── Accept ────────────────────────────────────────────────────────────

    async def accept(self, content: bytes, content_type: Optional[str]) -> str:
        """
        Validate and persist an uploaded image.

        Returns:
            Relative asset path, e.g. "images/<uuid>.png".

        Raises:
            UnsupportedMediaTypeError, PayloadTooLargeError, ValidationError
            FileStorageError if the write fails (no partial file is left)
        """
        normalized = self.validate(content_type, len(content))
        ext = self._extension_for(normalized)

        name = f"{uuid.uuid4().hex}.{ext}"
        relative_path = f"{IMAGES_DIR}/{name}"
        absolute_path = self.images_dir / name

        try:
            self.images_dir.mkdir(parents=True, exist_ok=True)
            # "x": never overwrite an existing asset
            async with aiofiles.open(absolute_path, "xb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store asset at %s: %s", absolute_path, str(e))
            await self._discard_partial(absolute_path)
            raise FileStorageError(
                context={"path": str(absolute_path), "os_error": str(e)},
            )

        logger.info("Asset stored: %s (%d bytes)", relative_path, len(content))
        return relative_path

    async def _discard_partial(self, path: Path) -> None:
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Could not discard partial asset %s: %s", path.name, str(e))

    # ── Remove ────────────────────────────────────────────────────────────

    async def remove(self, asset_path: str) -> None:
        """
        Delete an asset if present. Never raises.

        A missing file counts as success, so calling this twice is safe.
        Other OSErrors are retried cleanup_attempts times, then logged:
        a cleanup failure must not fail the operation that owns the asset.
        """
        try:
            path = self.resolve_path(asset_path)
        except ValidationError:
            logger.warning("Refusing to remove asset outside storage root: %s", asset_path)
            return

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.cleanup_attempts),
                wait=wait_fixed(self.cleanup_wait),
                retry=retry_if_exception_type(OSError),
                before_sleep=before_sleep_log(logger, logging.WARNING),
                reraise=True,
            ):
                with attempt:
                    await self._unlink(path)
        except OSError as e:
            logger.error(
                "Failed to remove asset %s after %d attempts: %s",
                asset_path,
                self.cleanup_attempts,
                str(e),
            )

    async def _unlink(self, path: Path) -> None:
        try:
            await aiofiles.os.remove(path)
            logger.info("Removed asset: %s", path.name)
        except FileNotFoundError:
            logger.debug("Asset already gone: %s", path.name)

    # ── Inventory ─────────────────────────────────────────────────────────

    def list_assets(self) -> List[StoredAsset]:
        """All files currently in the images directory, as relative paths."""
        if not self.images_dir.exists():
            return []
        assets = []
        for entry in self.images_dir.iterdir():
            if not entry.is_file():
                continue
            try:
                modified_at = entry.stat().st_mtime
            except FileNotFoundError:
                # Removed by a concurrent delete after the listing
                continue
            assets.append(StoredAsset(path=f"{IMAGES_DIR}/{entry.name}", modified_at=modified_at))
        return assets

    def is_writable(self) -> bool:
        try:
            self.images_dir.mkdir(parents=True, exist_ok=True)
            probe = self.images_dir / f".probe-{uuid.uuid4().hex}"
            probe.touch()
            probe.unlink()
            return True
        except OSError:
            return False

    @staticmethod
    def age_seconds(asset: StoredAsset) -> float:
        return time.time() - asset.modified_at


# ── Singleton Instance ────────────────────────────────────────────────────
asset_store = AssetStore()
