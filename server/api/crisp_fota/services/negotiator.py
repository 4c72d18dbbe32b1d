import logging
from urllib.parse import urlencode

from ..errors import NotFoundError
from ..schemas import CheckUpdateResponse
from .registry import FirmwareRegistry

logger = logging.getLogger(__name__)


class UpdateNegotiator:
    """Decides whether a device should be told a different firmware is active.

    Versions are compared by exact string equality. A device running a newer
    build than the active one is still offered the active build.
    """

    def __init__(self, registry: FirmwareRegistry, download_path: str = "/download"):
        self.registry = registry
        self.download_path = download_path

    def download_url(self, version: str) -> str:
        return f"{self.download_path}?{urlencode({'version': version})}"

    async def check(self, current_version: str, device_id: str = "") -> CheckUpdateResponse:
        logger.info("FOTA check: device=%s, current_version=%s", device_id, current_version)

        try:
            firmware = await self.registry.get_latest_active()
        except NotFoundError:
            return CheckUpdateResponse(status="no_update")

        if current_version == firmware.version:
            return CheckUpdateResponse(status="no_update")

        logger.info("Update available for device %s: %s -> %s", device_id, current_version, firmware.version)
        return CheckUpdateResponse(
            status="update_available",
            version=firmware.version,
            download_url=self.download_url(firmware.version),
            file_size=firmware.size_bytes,
            checksum=firmware.checksum,
            description=firmware.description,
        )
