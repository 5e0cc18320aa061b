"""
PlaceShare Backend — Asset Store Unit Tests
=============================================

What:  Tests for AssetStore validation, storage and removal.
Why:   The upload filter is a security boundary, and removal must never fail
       the operation that owns the image.
How:   Each test gets an AssetStore rooted in its own temporary directory.

Test Strategy:
    ✅ Allowed types (image/png, image/jpeg, image/jpg), case-insensitive
    ✅ Rejected types (gif, svg, pdf, missing)
    ✅ Size limit boundary at 500,000 bytes, empty uploads
    ✅ UUID naming with the extension derived from the type
    ✅ Idempotent, retrying, never-raising removal
    ✅ Path traversal refused
"""

import errno
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from app.exceptions import (
    FileStorageError,
    PayloadTooLargeError,
    UnsupportedMediaTypeError,
    ValidationError,
)
from app.services.asset_store import AssetStore, normalize_content_type


class TestAssetValidation:
    """Tests for the filter step."""

    @pytest.fixture(autouse=True)
    def _store(self, temp_storage):
        self.store = AssetStore(storage_root=temp_storage, max_size=500_000)

    @pytest.mark.parametrize("content_type", ["image/png", "image/jpeg", "image/jpg"])
    def test_allowed_types(self, content_type):
        """png, jpeg and jpg pass the filter."""
        assert self.store.validate(content_type, 100) == content_type

    def test_type_is_case_insensitive_and_ignores_parameters(self):
        assert self.store.validate("Image/PNG; charset=binary", 100) == "image/png"

    @pytest.mark.parametrize("content_type", ["image/gif", "image/svg+xml", "application/pdf", None, ""])
    def test_rejected_types(self, content_type):
        with pytest.raises(UnsupportedMediaTypeError, match="Invalid mime type!"):
            self.store.validate(content_type, 100)

    def test_size_at_limit(self):
        """Exactly max_size bytes is accepted."""
        self.store.validate("image/png", 500_000)

    def test_size_over_limit(self):
        """One byte over the limit is rejected with PayloadTooLarge."""
        with pytest.raises(PayloadTooLargeError, match="500 KB"):
            self.store.validate("image/png", 500_001)

    def test_600kb_upload_rejected(self):
        with pytest.raises(PayloadTooLargeError):
            self.store.validate("image/jpeg", 600_000)

    def test_type_checked_before_size(self):
        """A large gif reports the type problem, not the size."""
        with pytest.raises(UnsupportedMediaTypeError):
            self.store.validate("image/gif", 600_000)

    def test_empty_upload_rejected(self):
        with pytest.raises(ValidationError, match="empty"):
            self.store.validate("image/png", 0)

    def test_normalize_content_type_none(self):
        assert normalize_content_type(None) == ""


class TestAssetAccept:
    """Tests for storing uploads."""

    @pytest.fixture(autouse=True)
    def _store(self, asset_store):
        self.store = asset_store

    @pytest.mark.asyncio
    async def test_accept_writes_file_under_images(self):
        path = await self.store.accept(b"\x89PNG data", "image/png")

        assert path.startswith("images/")
        assert path.endswith(".png")
        assert self.store.resolve_path(path).read_bytes() == b"\x89PNG data"

    @pytest.mark.asyncio
    async def test_extension_follows_declared_type(self):
        """image/jpg and image/jpeg keep their own extensions."""
        jpg = await self.store.accept(b"\xff\xd8data", "image/jpg")
        jpeg = await self.store.accept(b"\xff\xd8data", "image/jpeg")

        assert jpg.endswith(".jpg")
        assert jpeg.endswith(".jpeg")

    @pytest.mark.asyncio
    async def test_names_are_unique(self):
        """Original filenames are never used; every upload gets a fresh UUID name."""
        first = await self.store.accept(b"same", "image/png")
        second = await self.store.accept(b"same", "image/png")
        assert first != second

    @pytest.mark.asyncio
    async def test_accept_rejects_before_writing(self):
        with pytest.raises(UnsupportedMediaTypeError):
            await self.store.accept(b"GIF89a", "image/gif")
        assert self.store.list_assets() == []

    @pytest.mark.asyncio
    async def test_write_failure_raises_file_storage_error(self):
        """A failing write raises FileStorageError and leaves no file behind."""
        with patch("app.services.asset_store.aiofiles.open", side_effect=OSError(errno.ENOSPC, "No space left")):
            with pytest.raises(FileStorageError):
                await self.store.accept(b"\x89PNG data", "image/png")

        assert self.store.list_assets() == []


class TestAssetRemove:
    """Tests for best-effort removal."""

    @pytest.fixture(autouse=True)
    def _store(self, asset_store):
        self.store = asset_store

    @pytest.mark.asyncio
    async def test_remove_deletes_file(self):
        path = await self.store.accept(b"\x89PNG data", "image/png")

        await self.store.remove(path)

        assert not self.store.resolve_path(path).exists()

    @pytest.mark.asyncio
    async def test_remove_twice_is_ok(self):
        """A missing file is success; removing twice does not raise."""
        path = await self.store.accept(b"\x89PNG data", "image/png")

        await self.store.remove(path)
        await self.store.remove(path)

    @pytest.mark.asyncio
    async def test_remove_never_seen_path(self):
        await self.store.remove("images/does-not-exist.png")

    @pytest.mark.asyncio
    async def test_remove_retries_transient_errors(self):
        """An OSError is retried; a later success removes the file."""
        path = await self.store.accept(b"\x89PNG data", "image/png")
        real_unlink = self.store._unlink
        calls = []

        async def flaky_unlink(target):
            calls.append(target)
            if len(calls) == 1:
                raise OSError(errno.EBUSY, "Device or resource busy")
            await real_unlink(target)

        with patch.object(self.store, "_unlink", side_effect=flaky_unlink):
            await self.store.remove(path)

        assert len(calls) == 2
        assert not self.store.resolve_path(path).exists()

    @pytest.mark.asyncio
    async def test_remove_gives_up_without_raising(self):
        """Persistent errors are logged after cleanup_attempts, never raised."""
        unlink = AsyncMock(side_effect=OSError(errno.EACCES, "Permission denied"))
        with patch.object(self.store, "_unlink", unlink):
            await self.store.remove("images/locked.png")

        assert unlink.await_count == self.store.cleanup_attempts

    @pytest.mark.asyncio
    async def test_remove_refuses_paths_outside_images(self, tmp_path):
        """Traversal out of the images directory is refused, and the target survives."""
        outside = tmp_path / "keep.txt"
        outside.write_text("keep me")

        await self.store.remove("images/../../keep.txt")

        assert outside.exists()

    def test_resolve_path_rejects_traversal(self):
        with pytest.raises(ValidationError):
            self.store.resolve_path("../etc/passwd")

    @pytest.mark.parametrize("asset_path", ["images", "images/", "images/nested/x.png", "."])
    def test_resolve_path_requires_a_file_inside_images(self, asset_path):
        with pytest.raises(ValidationError):
            self.store.resolve_path(asset_path)

    @pytest.mark.asyncio
    async def test_remove_images_directory_is_refused(self):
        unlink = AsyncMock()
        with patch.object(self.store, "_unlink", unlink):
            await self.store.remove("images")

        unlink.assert_not_awaited()
        assert self.store.images_dir.is_dir()


class TestAssetInventory:

    @pytest.mark.asyncio
    async def test_list_assets(self, asset_store):
        path = await asset_store.accept(b"\x89PNG data", "image/png")

        assets = asset_store.list_assets()

        assert [a.path for a in assets] == [path]
        assert asset_store.age_seconds(assets[0]) < 60

    def test_is_writable(self, asset_store):
        assert asset_store.is_writable()

    @pytest.mark.asyncio
    async def test_list_assets_skips_file_removed_while_listing(self, asset_store):
        """A file deleted between the directory scan and its stat is left out."""
        kept = await asset_store.accept(b"\x89PNG kept", "image/png")
        vanishing = await asset_store.accept(b"\x89PNG gone", "image/png")
        vanishing_name = vanishing.split("/", 1)[1]
        real_is_file = Path.is_file

        def is_file_then_vanish(path):
            present = real_is_file(path)
            if path.name == vanishing_name:
                path.unlink()
            return present

        with patch.object(Path, "is_file", is_file_then_vanish):
            assets = asset_store.list_assets()

        assert [a.path for a in assets] == [kept]
