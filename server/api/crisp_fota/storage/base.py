"""Blob storage capability shared by the local and cloud backends."""

from typing import AsyncIterator, BinaryIO, Protocol, runtime_checkable

CHUNK_SIZE = 64 * 1024
PLACEHOLDER_SCHEME = "blob://"


class BlobReader:
    """An opened blob: its byte length as stored and an async stream of chunks."""

    def __init__(self, chunks: AsyncIterator[bytes], size: int | None = None):
        self.size = size
        self._chunks = chunks

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self._chunks

    async def aclose(self) -> None:
        await self._chunks.aclose()


@runtime_checkable
class BlobStore(Protocol):
    """Key-addressed binary storage.

    ``download`` opens the object before returning, so a missing key raises
    ``BlobNotFoundError`` at call time rather than on first iteration.
    """

    async def upload(self, key: str, stream: BinaryIO, content_type: str) -> str:
        ...

    async def download(self, key: str) -> BlobReader:
        ...

    async def delete(self, key: str) -> None:
        ...

    def list(self, prefix: str = "") -> AsyncIterator[str]:
        ...

    async def resolve_url(self, key: str) -> str:
        ...

    async def close(self) -> None:
        ...


def join_url(base_url: str, key: str) -> str:
    return f"{base_url.rstrip('/')}/{key}"


def placeholder_url(key: str) -> str:
    # Not guaranteed to be fetchable; downloads go through the service
    return f"{PLACEHOLDER_SCHEME}{key}"
