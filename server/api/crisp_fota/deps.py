import hmac
import logging

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from .config import Settings
from .database import get_db
from .errors import UnauthorizedError
from .services import FirmwareDelivery, FirmwareIngestion, FirmwareRegistry, UpdateNegotiator
from .storage import BlobStore

logger = logging.getLogger(__name__)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_blob_store(request: Request) -> BlobStore:
    return request.app.state.blob_store


def get_registry(db: AsyncSession = Depends(get_db)) -> FirmwareRegistry:
    return FirmwareRegistry(db)


def get_negotiator(
    registry: FirmwareRegistry = Depends(get_registry),
    settings: Settings = Depends(get_app_settings),
) -> UpdateNegotiator:
    return UpdateNegotiator(registry, download_path=settings.download_path)


def get_ingestion(
    registry: FirmwareRegistry = Depends(get_registry),
    store: BlobStore = Depends(get_blob_store),
    settings: Settings = Depends(get_app_settings),
) -> FirmwareIngestion:
    return FirmwareIngestion(store, registry, max_upload_bytes=settings.max_upload_bytes)


def get_delivery(
    registry: FirmwareRegistry = Depends(get_registry),
    store: BlobStore = Depends(get_blob_store),
) -> FirmwareDelivery:
    return FirmwareDelivery(store, registry)


def extract_token(x_api_token: str | None, authorization: str | None) -> str:
    if x_api_token:
        return x_api_token
    if authorization and authorization.startswith("Bearer "):
        return authorization[len("Bearer "):]
    return authorization or ""


async def require_admin_token(
    settings: Settings = Depends(get_app_settings),
    x_api_token: str | None = Header(None),
    authorization: str | None = Header(None),
) -> None:
    """Admin check for uploads. With no token configured every caller is let through."""
    if not settings.admin_api_token:
        logger.warning("ADMIN_API_TOKEN not configured, upload endpoint is unprotected!")
        return

    token = extract_token(x_api_token, authorization)
    if not hmac.compare_digest(token.encode(), settings.admin_api_token.encode()):
        logger.warning("Unauthorized upload attempt")
        raise UnauthorizedError("Unauthorized")
