from datetime import datetime
from pydantic import BaseModel, ConfigDict


class FirmwareOut(BaseModel):
    """Firmware metadata returned by API (excludes binary data)."""
    model_config = ConfigDict(from_attributes=True)

    version: str
    storage_key: str
    resolved_url: str | None = None
    description: str
    size_bytes: int
    checksum: str
    is_active: bool
    created_at: datetime


class FirmwareList(BaseModel):
    """List of firmware entries."""
    items: list[FirmwareOut]
    total: int
