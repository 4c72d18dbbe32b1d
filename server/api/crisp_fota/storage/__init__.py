from .base import BlobReader, BlobStore
from .factory import create_blob_store, select_storage_type
from .local import LocalBlobStore
from .s3 import S3BlobStore

__all__ = ["BlobReader", "BlobStore", "LocalBlobStore", "S3BlobStore", "create_blob_store", "select_storage_type"]
