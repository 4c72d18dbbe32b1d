import hashlib
import io
import logging
import re

from fastapi import UploadFile
from starlette.datastructures import UploadFile as StarletteUploadFile

from ..errors import BadRequestError, FotaError, StorageError
from ..schemas import UploadResponse
from ..storage import BlobStore
from .registry import FirmwareRecord, FirmwareRegistry

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 64 * 1024
CONTENT_TYPE = "application/octet-stream"

# Versions become part of the storage key, so they must stay inside one path segment
_VERSION_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._+-]{0,63}$")


def storage_key_for(version: str) -> str:
    return f"firmware_v{version}.bin"


def validate_version(version: str | None) -> str:
    """Versions are stored verbatim and compared by exact equality, so no normalisation."""
    version = version or ""
    if not version.strip():
        raise BadRequestError("Version is required")
    if not _VERSION_RE.fullmatch(version) or ".." in version:
        raise BadRequestError(f"Invalid version: {version!r}")
    return version


class FirmwareIngestion:
    """Upload path: hash and buffer the payload, store it, then record it."""

    def __init__(self, store: BlobStore, registry: FirmwareRegistry, max_upload_bytes: int):
        self.store = store
        self.registry = registry
        self.max_upload_bytes = max_upload_bytes

    async def read_payload(self, upload: UploadFile) -> tuple[bytes, str]:
        """Read the whole upload into memory while computing its MD5."""
        md5_hash = hashlib.md5()
        buffer = bytearray()
        while chunk := await upload.read(READ_CHUNK_SIZE):
            md5_hash.update(chunk)
            buffer.extend(chunk)
            if len(buffer) > self.max_upload_bytes:
                raise BadRequestError(f"Firmware exceeds the {self.max_upload_bytes} byte upload limit")
        return bytes(buffer), md5_hash.hexdigest()

    async def ingest(self, version: str | None, description: str | None, upload: UploadFile | str | None) -> UploadResponse:
        version = validate_version(version)
        description = description or ""
        # A plain text form field named "firmware" is not a file
        if not isinstance(upload, StarletteUploadFile):
            raise BadRequestError("Firmware file is required")

        logger.info("Uploading firmware: version=%s, filename=%s", version, upload.filename)

        try:
            payload, checksum = await self.read_payload(upload)
        except OSError as e:
            raise StorageError(f"Failed to read uploaded file: {e}") from e
        if not payload:
            raise BadRequestError("Firmware file is empty")

        size_bytes = len(payload)
        logger.info("File read: size=%d, checksum=%s", size_bytes, checksum)

        storage_key = storage_key_for(version)
        try:
            resolved_url = await self.store.upload(storage_key, io.BytesIO(payload), CONTENT_TYPE)
        except FotaError:
            logger.exception("Failed to upload firmware %s to %s", version, storage_key)
            raise
        logger.info("Firmware uploaded successfully: %s", storage_key)

        # A failure here leaves the blob in place; a re-upload overwrites the same key
        try:
            firmware = await self.registry.upsert(
                FirmwareRecord(
                    version=version,
                    storage_key=storage_key,
                    resolved_url=resolved_url,
                    description=description,
                    size_bytes=size_bytes,
                    checksum=checksum,
                )
            )
        except FotaError:
            logger.exception("Failed to save firmware info for %s", version)
            raise

        logger.info("Firmware %s uploaded successfully", version)
        return UploadResponse(
            version=firmware.version,
            file_size=firmware.size_bytes,
            checksum=firmware.checksum,
            description=firmware.description,
            storage_key=firmware.storage_key,
            resolved_url=firmware.resolved_url,
        )
