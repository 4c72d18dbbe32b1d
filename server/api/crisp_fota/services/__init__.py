from .delivery import FirmwareDelivery, FirmwareDownload
from .ingestion import FirmwareIngestion, storage_key_for, validate_version
from .negotiator import UpdateNegotiator
from .registry import FirmwareRecord, FirmwareRegistry

__all__ = [
    "FirmwareDelivery", "FirmwareDownload",
    "FirmwareIngestion", "storage_key_for", "validate_version",
    "UpdateNegotiator",
    "FirmwareRecord", "FirmwareRegistry",
]
