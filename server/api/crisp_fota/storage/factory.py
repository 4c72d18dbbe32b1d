import logging

from ..config import Settings
from ..errors import ConfigurationError
from .base import BlobStore
from .local import LocalBlobStore
from .s3 import S3BlobStore

logger = logging.getLogger(__name__)

STORAGE_TYPES = ("local", "s3")


def select_storage_type(settings: Settings) -> str:
    """Explicit ``storage_type`` wins; otherwise cloud when credentials are present."""
    storage_type = settings.storage_type.strip().lower()
    if storage_type:
        if storage_type not in STORAGE_TYPES:
            raise ConfigurationError(f"Unknown storage type: {settings.storage_type}")
        return storage_type
    return "s3" if settings.has_cloud_credentials else "local"


def create_blob_store(settings: Settings) -> BlobStore:
    storage_type = select_storage_type(settings)

    if storage_type == "s3":
        if not settings.has_cloud_credentials:
            raise ConfigurationError("AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY must be set for s3 storage")
        if not settings.s3_bucket:
            raise ConfigurationError("S3_BUCKET must be set for s3 storage")
        logger.info("Using S3 blob storage: bucket=%s", settings.s3_bucket)
        return S3BlobStore(
            bucket=settings.s3_bucket,
            region_name=settings.s3_region,
            endpoint_url=settings.s3_endpoint_url or None,
            aws_access_key_id=settings.aws_access_key_id,
            aws_secret_access_key=settings.aws_secret_access_key,
            public_base_url=settings.public_base_url,
            presign_urls=settings.s3_presign_urls,
            presign_expiry_seconds=settings.s3_presign_expiry_seconds,
        )

    try:
        store = LocalBlobStore(settings.local_storage_path, public_base_url=settings.public_base_url)
    except OSError as e:
        raise ConfigurationError(f"Failed to create storage directory {settings.local_storage_path}: {e}") from e
    logger.info("Using local blob storage at %s", store.root)
    return store
