from __future__ import annotations

import asyncio
import logging
import os
import uuid
from pathlib import Path
from typing import AsyncIterator, BinaryIO

import aiofiles
import aiofiles.os

from ..errors import BlobNotFoundError, StorageError
from .base import CHUNK_SIZE, BlobReader, join_url, placeholder_url

logger = logging.getLogger(__name__)


class LocalBlobStore:
    """Blob store backed by a directory on local disk.

    Writes go to a temporary sibling file that is renamed over the target once
    the stream is drained, so readers never observe a partial object.
    """

    def __init__(self, root: str | os.PathLike, public_base_url: str = ""):
        self.root = Path(root).resolve()
        self.public_base_url = public_base_url
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        if not key:
            raise StorageError("Blob key must not be empty")
        path = (self.root / key).resolve()
        if path == self.root or not path.is_relative_to(self.root):
            raise StorageError(f"Blob key escapes storage root: {key!r}")
        return path

    async def upload(self, key: str, stream: BinaryIO, content_type: str) -> str:
        path = self._path(key)
        tmp_path = path.with_name(f".{path.name}.{uuid.uuid4().hex}.tmp")
        try:
            await aiofiles.os.makedirs(path.parent, exist_ok=True)
            async with aiofiles.open(tmp_path, "wb") as out_file:
                while chunk := stream.read(CHUNK_SIZE):
                    await out_file.write(chunk)
            await aiofiles.os.replace(tmp_path, path)
        except OSError as e:
            raise StorageError(f"Failed to write blob {key}: {e}") from e
        finally:
            try:
                await aiofiles.os.remove(tmp_path)
            except FileNotFoundError:
                pass

        logger.debug("Stored %s (%s) at %s", key, content_type, path)
        return await self.resolve_url(key)

    async def download(self, key: str) -> BlobReader:
        path = self._path(key)
        try:
            handle = await aiofiles.open(path, "rb")
        except FileNotFoundError as e:
            raise BlobNotFoundError(key) from e
        except OSError as e:
            raise StorageError(f"Failed to open blob {key}: {e}") from e
        # Size of the file actually opened, even if the key is replaced meanwhile
        size = os.fstat(handle.fileno()).st_size
        return BlobReader(self._iter_file(handle), size=size)

    @staticmethod
    async def _iter_file(handle) -> AsyncIterator[bytes]:
        try:
            while chunk := await handle.read(CHUNK_SIZE):
                yield chunk
        finally:
            await handle.close()

    async def delete(self, key: str) -> None:
        path = self._path(key)
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            raise StorageError(f"Failed to delete blob {key}: {e}") from e

    async def list(self, prefix: str = "") -> AsyncIterator[str]:
        keys = await asyncio.to_thread(self._scan)
        for key in keys:
            if key.startswith(prefix):
                yield key

    def _scan(self) -> list[str]:
        keys = []
        for dirpath, _dirnames, filenames in os.walk(self.root):
            for name in filenames:
                if name.startswith(".") and name.endswith(".tmp"):
                    continue
                full = Path(dirpath) / name
                keys.append(full.relative_to(self.root).as_posix())
        return sorted(keys)

    async def resolve_url(self, key: str) -> str:
        if self.public_base_url:
            return join_url(self.public_base_url, key)
        return placeholder_url(key)

    async def close(self) -> None:
        pass
