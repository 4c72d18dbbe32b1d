from .firmware import FirmwareOut, FirmwareList
from .fota import CheckUpdateResponse, UploadResponse

__all__ = ["FirmwareOut", "FirmwareList", "CheckUpdateResponse", "UploadResponse"]
