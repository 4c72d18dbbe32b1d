from typing import Literal

from pydantic import BaseModel


class CheckUpdateResponse(BaseModel):
    """Answer to a device's update check. Optional fields are omitted when absent."""
    status: Literal["no_update", "update_available"]
    version: str | None = None
    download_url: str | None = None
    file_size: int | None = None
    checksum: str | None = None
    description: str | None = None


class UploadResponse(BaseModel):
    """Confirmation returned after a firmware binary has been stored."""
    status: Literal["success"] = "success"
    version: str
    file_size: int
    checksum: str
    description: str
    storage_key: str
    resolved_url: str | None = None
