"""
S3 / MinIO blob storage backend.

boto3 is synchronous; every client call runs in a worker thread so the event
loop is never blocked by network I/O.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, AsyncIterator, BinaryIO

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..errors import BlobNotFoundError, StorageError
from .base import CHUNK_SIZE, BlobReader, join_url, placeholder_url

logger = logging.getLogger(__name__)

_MISSING_CODES = {"NoSuchKey", "404", "NotFound"}


def _is_missing(exc: ClientError) -> bool:
    return exc.response.get("Error", {}).get("Code") in _MISSING_CODES


class S3BlobStore:
    """
    Store blobs in an S3-compatible bucket.

    Usage::

        store = S3BlobStore(
            bucket="firmware",
            endpoint_url="http://localhost:9000",  # for MinIO
            aws_access_key_id="minioadmin",
            aws_secret_access_key="minioadmin",
        )
    """

    def __init__(
        self,
        bucket: str,
        region_name: str = "us-east-1",
        endpoint_url: str | None = None,
        aws_access_key_id: str | None = None,
        aws_secret_access_key: str | None = None,
        public_base_url: str = "",
        presign_urls: bool = True,
        presign_expiry_seconds: int = 3600,
        client: Any = None,
    ):
        self.bucket = bucket
        self.public_base_url = public_base_url
        self.presign_urls = presign_urls
        self.presign_expiry_seconds = presign_expiry_seconds
        self._closed = False

        if client is None:
            kwargs = {"region_name": region_name}
            if endpoint_url:
                kwargs["endpoint_url"] = endpoint_url
            if aws_access_key_id:
                kwargs["aws_access_key_id"] = aws_access_key_id
            if aws_secret_access_key:
                kwargs["aws_secret_access_key"] = aws_secret_access_key
            client = boto3.client("s3", **kwargs)
        self._client = client

    async def upload(self, key: str, stream: BinaryIO, content_type: str) -> str:
        try:
            # Managed transfer; multipart objects only become visible on completion
            await asyncio.to_thread(
                self._client.upload_fileobj,
                stream,
                self.bucket,
                key,
                ExtraArgs={"ContentType": content_type},
            )
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Failed to upload s3://{self.bucket}/{key}: {e}") from e

        logger.info("Stored blob in S3: s3://%s/%s", self.bucket, key)
        return await self.resolve_url(key)

    async def download(self, key: str) -> BlobReader:
        try:
            resp = await asyncio.to_thread(self._client.get_object, Bucket=self.bucket, Key=key)
        except ClientError as e:
            if _is_missing(e):
                raise BlobNotFoundError(key) from e
            raise StorageError(f"Failed to open s3://{self.bucket}/{key}: {e}") from e
        except BotoCoreError as e:
            raise StorageError(f"Failed to open s3://{self.bucket}/{key}: {e}") from e
        return BlobReader(self._iter_body(resp["Body"]), size=resp.get("ContentLength"))

    @staticmethod
    async def _iter_body(body) -> AsyncIterator[bytes]:
        try:
            while chunk := await asyncio.to_thread(body.read, CHUNK_SIZE):
                yield chunk
        finally:
            body.close()

    async def delete(self, key: str) -> None:
        try:
            await asyncio.to_thread(self._client.delete_object, Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Failed to delete s3://{self.bucket}/{key}: {e}") from e

    async def list(self, prefix: str = "") -> AsyncIterator[str]:
        paginator = self._client.get_paginator("list_objects_v2")
        pages = iter(paginator.paginate(Bucket=self.bucket, Prefix=prefix))
        while True:
            try:
                page = await asyncio.to_thread(next, pages, None)
            except (BotoCoreError, ClientError) as e:
                raise StorageError(f"Failed to list s3://{self.bucket}/{prefix}: {e}") from e
            if page is None:
                break
            for obj in page.get("Contents", []):
                yield obj["Key"]

    async def resolve_url(self, key: str) -> str:
        if self.public_base_url:
            return join_url(self.public_base_url, key)
        if self.presign_urls:
            try:
                return await asyncio.to_thread(
                    self._client.generate_presigned_url,
                    "get_object",
                    Params={"Bucket": self.bucket, "Key": key},
                    ExpiresIn=self.presign_expiry_seconds,
                )
            except (BotoCoreError, ClientError) as e:
                logger.warning("Could not presign s3://%s/%s: %s", self.bucket, key, e)
        return placeholder_url(key)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await asyncio.to_thread(self._client.close)
