"""
Image Folder Routes

GET|POST /ensureVinFolder/{vin} makes sure ``{prefix}{VIN}/`` exists in the
image container before photos are uploaded for a unit. GET /images/{vin} and
GET /units/{unit_id}/images list the numbered photos stored there.
"""

from fastapi import APIRouter

from invport.application.api.dependencies import InventoryServiceDep, VinFolderServiceDep

router = APIRouter(tags=["Storage"])


@router.api_route("/ensureVinFolder/{vin}", methods=["GET", "POST"], summary="Ensure a VIN image folder")
async def ensure_vin_folder(vin: str, folders: VinFolderServiceDep):
    """
    Returns ``{success, created, container, path, responseTimeMs, timestamp}``;
    ``created`` is False when the folder already had blobs.
    """
    return await folders.ensure_vin_folder(vin)


@router.get("/images/{vin}", summary="List a VIN's photos")
async def list_vin_images(vin: str, folders: VinFolderServiceDep, single: str = ""):
    """
    Returns ``{success, images: [{name, number, ext, size, etag}]}``.
    ``?single=true`` returns only the first photo, or 404 when there is none.
    """
    return await folders.list_images(vin, single=single.strip().lower() == "true")


@router.get("/units/{unit_id}/images", summary="List a unit's photos")
async def list_unit_images(unit_id: str, inventory: InventoryServiceDep, folders: VinFolderServiceDep):
    """Resolves the unit's VIN, then returns ``[{name, number}]``."""
    vin = await inventory.get_unit_vin(unit_id)
    return await folders.list_unit_images(vin)
