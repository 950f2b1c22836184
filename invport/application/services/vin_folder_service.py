"""
VIN Folder Service

Ensures the image folder ``{prefix}{VIN}/`` exists in blob storage so photo
uploads for a new unit have somewhere to land, and lists the numbered photos
already stored there.
"""

import time
from typing import Any

from invport.core.clock import utc_now_iso
from invport.core.config.settings import StorageSettings
from invport.core.exceptions import NotFoundError, ValidationError
from invport.core.logging.logger import get_logger, log_stage
from invport.core.resilience.rate_limiter import RATE_LIMITS, RateLimiter
from invport.infrastructure.storage.blob_storage import (
    BlobFolderStore,
    parse_image_base_url,
    sanitize_vin,
)

logger = get_logger(__name__)


class VinFolderService:
    """
    Args:
        store: Blob folder store for the image account
        storage_settings: Image base URL and optional container override
        rate_limiter: Outbound throttle; None disables throttling
    """

    def __init__(
        self,
        store: BlobFolderStore,
        storage_settings: StorageSettings,
        rate_limiter: RateLimiter | None = None,
    ):
        self._store = store
        container, prefix = parse_image_base_url(storage_settings.image_base_url)
        self.container = storage_settings.AZURE_STORAGE_CONTAINER or container
        self.prefix = prefix
        self._rate_limiter = rate_limiter

    async def _throttle(self) -> None:
        if self._rate_limiter is not None:
            await self._rate_limiter.throttle("IMAGES", RATE_LIMITS["IMAGES"])

    async def ensure_vin_folder(self, raw_vin: Any) -> dict[str, Any]:
        """
        Create the VIN's folder placeholder unless the folder already has blobs.

        Raises:
            ValidationError: VIN empty after sanitizing
            ConfigurationError: Storage connection string not configured
            UpstreamError: Storage call failed
        """
        start = time.perf_counter()
        vin = sanitize_vin(raw_vin)
        if not vin:
            raise ValidationError("VIN is required")

        await self._throttle()

        path = f"{self.prefix}{vin}/"
        created = await self._store.ensure_folder(self.container, path)
        log_stage(logger, "BLOB.3", "VIN folder ensured", vin=vin, path=path, created=created)
        return {
            "success": True,
            "created": created,
            "container": self.container,
            "path": path,
            "responseTimeMs": int(round((time.perf_counter() - start) * 1000)),
            "timestamp": utc_now_iso(),
        }

    async def list_images(self, raw_vin: Any, single: bool = False) -> dict[str, Any]:
        """
        List the VIN's photos in number order.

        With ``single`` only the first photo is returned, and an empty folder
        is a NotFoundError.

        Raises:
            ValidationError: VIN empty after sanitizing
            NotFoundError: ``single`` requested and no photos exist
            ConfigurationError: Storage connection string not configured
            UpstreamError: Storage call failed
        """
        vin = sanitize_vin(raw_vin)
        if not vin:
            raise ValidationError("VIN is required")

        images = await self._list(vin)
        if single:
            if not images:
                raise NotFoundError("No images found", details={"vin": vin})
            images = images[:1]
        return {"success": True, "images": images}

    async def list_unit_images(self, vin: str) -> list[dict[str, Any]]:
        """
        Photos for a unit's stored VIN as ``[{name, number}]`` with bare
        ``{n}.{ext}`` names.

        Raises:
            ValidationError: Stored VIN has no usable characters
        """
        sanitized = sanitize_vin(vin)
        if not sanitized:
            raise ValidationError("Invalid VIN for unit", details={"vin": vin})

        return [
            {"name": f"{image['number']}.{image['ext']}", "number": image["number"]}
            for image in await self._list(sanitized)
        ]

    async def _list(self, vin: str) -> list[dict[str, Any]]:
        await self._throttle()
        images = await self._store.list_images(self.container, f"{self.prefix}{vin}/")
        log_stage(logger, "BLOB.5", "VIN images listed", vin=vin, count=len(images))
        return images
