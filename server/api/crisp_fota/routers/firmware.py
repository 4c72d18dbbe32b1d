from fastapi import APIRouter, Depends

from ..deps import get_registry
from ..schemas import FirmwareOut, FirmwareList
from ..services import FirmwareRegistry

router = APIRouter(prefix="/api/v1/firmware", tags=["firmware"])


@router.get("", response_model=FirmwareList)
async def list_firmware(registry: FirmwareRegistry = Depends(get_registry)):
    """List all firmware versions, newest first."""
    firmware_list = await registry.list_all()
    return FirmwareList(
        items=[FirmwareOut.model_validate(fw) for fw in firmware_list],
        total=len(firmware_list),
    )


@router.get("/{version}", response_model=FirmwareOut)
async def get_firmware(version: str, registry: FirmwareRegistry = Depends(get_registry)):
    """Get firmware metadata by version."""
    firmware = await registry.get_by_version(version)
    return FirmwareOut.model_validate(firmware)
