from .fota import router as fota_router
from .firmware import router as firmware_router

__all__ = ["fota_router", "firmware_router"]
