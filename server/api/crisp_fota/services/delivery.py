import logging
from dataclasses import dataclass
from typing import AsyncIterator

from ..errors import BadRequestError, BlobNotFoundError, StorageError
from ..models import Firmware
from ..storage import BlobReader, BlobStore
from .registry import FirmwareRegistry

logger = logging.getLogger(__name__)

DOWNLOAD_FAILED = "Failed to download firmware"


@dataclass
class FirmwareDownload:
    firmware: Firmware
    chunks: AsyncIterator[bytes]
    blob_size: int | None = None

    @property
    def filename(self) -> str:
        return f"firmware_{self.firmware.version}.bin"

    @property
    def headers(self) -> dict[str, str]:
        headers = {
            "Content-Disposition": f"attachment; filename={self.filename}",
            "X-Firmware-Version": self.firmware.version,
            "X-Firmware-Checksum": self.firmware.checksum,
        }
        # Omit the length if a re-upload replaced the blob after the record was read
        if self.blob_size is None or self.blob_size == self.firmware.size_bytes:
            headers["Content-Length"] = str(self.firmware.size_bytes)
        return headers


class FirmwareDelivery:
    """Download path: version -> storage key -> byte stream."""

    def __init__(self, store: BlobStore, registry: FirmwareRegistry):
        self.store = store
        self.registry = registry

    async def open(self, version: str | None, device_id: str = "") -> FirmwareDownload:
        logger.info("FOTA download: device=%s, version=%s", device_id, version)
        if not version:
            raise BadRequestError("Version is required")

        # Deactivated firmware is not served
        firmware = await self.registry.get_by_version(version, active_only=True)

        try:
            reader = await self.store.download(firmware.storage_key)
        except BlobNotFoundError as e:
            logger.error(
                "Firmware %s is registered but blob %s is missing (device=%s)",
                version, firmware.storage_key, device_id,
            )
            raise StorageError(e.message, public_message=DOWNLOAD_FAILED) from e
        except StorageError as e:
            logger.exception("Failed to open firmware %s for device %s", version, device_id)
            raise StorageError(e.message, public_message=DOWNLOAD_FAILED) from e

        if reader.size is not None and reader.size != firmware.size_bytes:
            logger.warning(
                "Firmware %s blob is %d bytes but registered as %d (concurrent upload?)",
                version, reader.size, firmware.size_bytes,
            )

        logger.info("Serving firmware %s (%d bytes) to device %s", version, firmware.size_bytes, device_id)
        return FirmwareDownload(
            firmware=firmware,
            chunks=self._stream(reader, version, device_id),
            blob_size=reader.size,
        )

    @staticmethod
    async def _stream(reader: BlobReader, version: str, device_id: str) -> AsyncIterator[bytes]:
        try:
            async for chunk in reader:
                yield chunk
        except Exception:
            logger.exception("Failed to send firmware %s to device %s", version, device_id)
            raise
        finally:
            await reader.aclose()
        logger.info("Firmware %s successfully downloaded by device %s", version, device_id)
