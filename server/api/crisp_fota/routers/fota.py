from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import StreamingResponse

from ..deps import get_delivery, get_ingestion, get_negotiator, require_admin_token
from ..schemas import CheckUpdateResponse, UploadResponse
from ..services import FirmwareDelivery, FirmwareIngestion, UpdateNegotiator

router = APIRouter(tags=["fota"])


@router.get("/check", response_model=CheckUpdateResponse, response_model_exclude_none=True)
async def check_update(
    current_version: str = "",
    device_id: str = "",
    negotiator: UpdateNegotiator = Depends(get_negotiator),
):
    """Device polls this to learn whether a different firmware is active."""
    return await negotiator.check(current_version, device_id)


@router.get("/download", response_class=StreamingResponse)
async def download_firmware(
    version: str = "",
    device_id: str = "",
    delivery: FirmwareDelivery = Depends(get_delivery),
):
    """Stream a firmware binary with its version and checksum headers."""
    download = await delivery.open(version, device_id)
    return StreamingResponse(
        download.chunks,
        media_type="application/octet-stream",
        headers=download.headers,
    )


@router.post(
    "/upload",
    response_model=UploadResponse,
    status_code=201,
    dependencies=[Depends(require_admin_token)],
)
async def upload_firmware(
    version: str | None = Form(None),
    description: str | None = Form(None),
    firmware: UploadFile | str | None = File(None),
    ingestion: FirmwareIngestion = Depends(get_ingestion),
):
    """Upload a firmware binary and make it the active version."""
    return await ingestion.ingest(version, description, firmware)
