"""
Unit Tests for VinFolderService

Folder provisioning and photo listing over a mocked BlobFolderStore.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from invport.application.services.vin_folder_service import VinFolderService
from invport.core.exceptions import NotFoundError, ValidationError
from invport.core.resilience.rate_limiter import RateLimiter
from invport.infrastructure.storage.blob_storage import BlobFolderStore
from tests.test_fixtures import FakeClock, make_settings


@pytest.fixture
def store():
    store = MagicMock(spec=BlobFolderStore)
    store.ensure_folder = AsyncMock(return_value=True)
    store.list_images = AsyncMock(return_value=[])
    return store


@pytest.mark.unit
class TestVinFolderService:
    @pytest.mark.asyncio
    async def test_default_layout(self, store):
        service = VinFolderService(store, make_settings().storage)

        response = await service.ensure_vin_folder("1hg-cm82633a004352")

        store.ensure_folder.assert_awaited_once_with("invpics", "units/1HGCM82633A004352/")
        assert response["success"] is True
        assert response["created"] is True
        assert response["container"] == "invpics"
        assert response["path"] == "units/1HGCM82633A004352/"
        assert response["responseTimeMs"] >= 0
        assert response["timestamp"].endswith("Z")

    @pytest.mark.asyncio
    async def test_container_override_and_custom_base_url(self, store):
        settings = make_settings(
            IMGBaseURL="https://acct.blob.core.windows.net/photos/lot",
            AZURE_STORAGE_CONTAINER="staging-photos",
        )
        service = VinFolderService(store, settings.storage)

        response = await service.ensure_vin_folder("ABC")

        store.ensure_folder.assert_awaited_once_with("staging-photos", "lot/ABC/")
        assert response["container"] == "staging-photos"

    @pytest.mark.asyncio
    async def test_existing_folder(self, store):
        store.ensure_folder.return_value = False
        service = VinFolderService(store, make_settings().storage)

        response = await service.ensure_vin_folder("ABC")

        assert response["created"] is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("vin", ["", "  ", "---", None])
    async def test_empty_vin_rejected(self, store, vin):
        service = VinFolderService(store, make_settings().storage)

        with pytest.raises(ValidationError, match="VIN is required"):
            await service.ensure_vin_folder(vin)

        store.ensure_folder.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_throttled_under_images_key(self, store):
        clock = FakeClock()
        limiter = RateLimiter(clock=clock, sleep=clock.sleep)
        service = VinFolderService(store, make_settings().storage, rate_limiter=limiter)

        await service.ensure_vin_folder("A")
        await service.ensure_vin_folder("B")

        assert limiter.get_call_count("IMAGES", 5000) == 2
        assert clock.sleeps == [0.5]


def image(number, ext="jpg", vin="ABC"):
    return {
        "name": f"units/{vin}/{number}.{ext}",
        "number": number,
        "ext": ext,
        "size": 1024,
        "etag": f"0x{number}",
    }


@pytest.mark.unit
class TestListImages:
    @pytest.mark.asyncio
    async def test_lists_sanitized_vin_folder(self, store):
        store.list_images.return_value = [image(1), image(2, "png")]
        service = VinFolderService(store, make_settings().storage)

        response = await service.list_images(" abc ")

        store.list_images.assert_awaited_once_with("invpics", "units/ABC/")
        assert response == {"success": True, "images": [image(1), image(2, "png")]}

    @pytest.mark.asyncio
    async def test_single_returns_first_image(self, store):
        store.list_images.return_value = [image(1), image(2)]
        service = VinFolderService(store, make_settings().storage)

        response = await service.list_images("ABC", single=True)

        assert response["images"] == [image(1)]

    @pytest.mark.asyncio
    async def test_single_with_empty_folder_is_not_found(self, store):
        service = VinFolderService(store, make_settings().storage)

        with pytest.raises(NotFoundError, match="No images found"):
            await service.list_images("ABC", single=True)

    @pytest.mark.asyncio
    async def test_empty_folder_lists_nothing(self, store):
        service = VinFolderService(store, make_settings().storage)

        assert await service.list_images("ABC") == {"success": True, "images": []}

    @pytest.mark.asyncio
    async def test_empty_vin_rejected(self, store):
        service = VinFolderService(store, make_settings().storage)

        with pytest.raises(ValidationError, match="VIN is required"):
            await service.list_images("--")

        store.list_images.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unit_images_use_bare_names(self, store):
        store.list_images.return_value = [image(1, "webp"), image(3)]
        service = VinFolderService(store, make_settings().storage)

        images = await service.list_unit_images("abc-1")

        store.list_images.assert_awaited_once_with("invpics", "units/ABC1/")
        assert images == [{"name": "1.webp", "number": 1}, {"name": "3.jpg", "number": 3}]

    @pytest.mark.asyncio
    async def test_unit_with_unusable_vin(self, store):
        service = VinFolderService(store, make_settings().storage)

        with pytest.raises(ValidationError, match="Invalid VIN for unit"):
            await service.list_unit_images("***")

        store.list_images.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_listing_is_throttled_under_images_key(self, store):
        clock = FakeClock()
        limiter = RateLimiter(clock=clock, sleep=clock.sleep)
        service = VinFolderService(store, make_settings().storage, rate_limiter=limiter)

        await service.list_images("A")
        await service.list_unit_images("B")

        assert limiter.get_call_count("IMAGES", 5000) == 2
