"""
Azure Blob Storage Adapter

Materializes per-VIN image "folders" in a flat blob namespace. Blob storage
has no directories, so a folder exists once any blob carries its prefix; an
empty placeholder blob is written when none does.

STAGE-BLOB: Folder provisioning and listing
-------------------------------------------
BLOB.1: Probe for an existing blob under the prefix
BLOB.2: Upload the placeholder
BLOB.4: List numbered images under a folder
BLOB.ERROR: Storage failure
"""

import re
from collections.abc import Callable
from typing import Any
from urllib.parse import urlparse

from azure.core.exceptions import AzureError
from azure.storage.blob import ContentSettings
from azure.storage.blob.aio import BlobServiceClient

from invport.core.config.constants import (
    DEFAULT_IMAGE_CONTAINER,
    DEFAULT_IMAGE_PREFIX,
    FOLDER_PLACEHOLDER_BLOB,
    IMAGE_EXTENSIONS,
)
from invport.core.exceptions import ConfigurationError, UpstreamError
from invport.core.logging.logger import get_logger, redact_text

logger = get_logger(__name__)

ClientFactory = Callable[[str], Any]


def sanitize_vin(raw_vin: Any) -> str:
    """Strip everything but ASCII letters and digits, then upper-case."""
    text = "" if raw_vin is None else str(raw_vin).strip()
    return "".join(ch for ch in text if ch.isascii() and ch.isalnum()).upper()


def parse_image_base_url(base_url: str) -> tuple[str, str]:
    """
    Split an image base URL into ``(container, prefix)``.

    The first path segment names the container; the remaining segments form
    the prefix (with a trailing slash, or empty). Anything that is not an
    absolute URL falls back to the default ``invpics`` / ``units/`` layout.

    Example:
        >>> parse_image_base_url("https://acct.blob.core.windows.net/invpics/units/")
        ('invpics', 'units/')
    """
    try:
        parsed = urlparse(base_url)
    except ValueError:
        return DEFAULT_IMAGE_CONTAINER, DEFAULT_IMAGE_PREFIX
    if not parsed.scheme or not parsed.netloc:
        return DEFAULT_IMAGE_CONTAINER, DEFAULT_IMAGE_PREFIX

    segments = [segment for segment in parsed.path.split("/") if segment]
    container = segments[0] if segments else DEFAULT_IMAGE_CONTAINER
    prefix = "/".join(segments[1:])
    return container, f"{prefix}/" if prefix else ""


class BlobFolderStore:
    """
    Folder-style operations over one storage account.

    The service client is created on first use and kept until `close()`.

    Args:
        connection_string: Storage account connection string; None when unset
        client_factory: Builds the async service client from a connection string
    """

    def __init__(
        self,
        connection_string: str | None,
        client_factory: ClientFactory = BlobServiceClient.from_connection_string,
    ):
        self._connection_string = connection_string
        self._client_factory = client_factory
        self._client: Any = None

    @property
    def configured(self) -> bool:
        return bool(self._connection_string)

    def _service_client(self) -> Any:
        if not self._connection_string:
            raise ConfigurationError("Storage connection not configured")
        if self._client is None:
            try:
                self._client = self._client_factory(self._connection_string)
            except ValueError as exc:
                raise ConfigurationError(
                    f"Invalid storage connection string: {redact_text(str(exc))}"
                ) from exc
        return self._client

    async def ensure_folder(self, container: str, folder_prefix: str) -> bool:
        """
        Make sure at least one blob exists under ``folder_prefix``.

        Returns:
            True when the placeholder was created, False when the folder already
            had content.

        Raises:
            ConfigurationError: No (or an unusable) connection string
            UpstreamError: Listing or upload failed
        """
        container_client = self._service_client().get_container_client(container)
        try:
            exists = False
            async for _ in container_client.list_blobs(
                name_starts_with=folder_prefix, results_per_page=1
            ):
                exists = True
                break
            logger.debug("Folder probe", stage="BLOB.1", container=container, prefix=folder_prefix, exists=exists)

            if exists:
                return False

            await container_client.upload_blob(
                name=f"{folder_prefix}{FOLDER_PLACEHOLDER_BLOB}",
                data=b"",
                overwrite=True,
                content_settings=ContentSettings(content_type="text/plain"),
            )
        except AzureError as exc:
            raise self._storage_error(exc, container, folder_prefix) from exc

        logger.info("Folder placeholder created", stage="BLOB.2", container=container, prefix=folder_prefix)
        return True

    async def list_images(self, container: str, folder_prefix: str) -> list[dict[str, Any]]:
        """
        List the numbered images (``{n}.{ext}``) directly under ``folder_prefix``.

        Other blobs (the folder placeholder, nested paths, unnumbered names)
        are skipped. Results are sorted by number.

        Returns:
            ``[{name, number, ext, size, etag}]``

        Raises:
            ConfigurationError: No (or an unusable) connection string
            UpstreamError: Listing failed
        """
        pattern = re.compile(
            rf"^{re.escape(folder_prefix)}(\d+)\.({'|'.join(IMAGE_EXTENSIONS)})$", re.IGNORECASE
        )
        container_client = self._service_client().get_container_client(container)
        images = []
        try:
            async for blob in container_client.list_blobs(name_starts_with=folder_prefix):
                match = pattern.match(blob.name)
                if match:
                    images.append({
                        "name": blob.name,
                        "number": int(match.group(1)),
                        "ext": match.group(2).lower(),
                        "size": blob.size or 0,
                        "etag": blob.etag,
                    })
        except AzureError as exc:
            raise self._storage_error(exc, container, folder_prefix) from exc

        images.sort(key=lambda image: image["number"])
        logger.debug("Images listed", stage="BLOB.4", container=container, prefix=folder_prefix, count=len(images))
        return images

    @staticmethod
    def _storage_error(exc: AzureError, container: str, prefix: str) -> UpstreamError:
        message = redact_text(getattr(exc, "message", None) or str(exc)) or "Unknown error"
        logger.error(
            "Blob storage call failed",
            stage="BLOB.ERROR",
            container=container,
            prefix=prefix,
            error=message,
        )
        return UpstreamError(
            message,
            service="blob_storage",
            upstream_status=getattr(exc, "status_code", None),
            details={"container": container},
        )

    async def close(self) -> None:
        client, self._client = self._client, None
        if client is not None:
            await client.close()
