import io

import pytest

from crisp_fota.errors import BlobNotFoundError, StorageError
from crisp_fota.storage import BlobStore, LocalBlobStore


async def read_all(store, key: str) -> bytes:
    return b"".join([chunk async for chunk in await store.download(key)])


@pytest.fixture
def store(tmp_path) -> LocalBlobStore:
    return LocalBlobStore(tmp_path / "blobs")


def test_satisfies_blob_store_protocol(store):
    assert isinstance(store, BlobStore)


def test_root_created_on_demand(tmp_path):
    root = tmp_path / "a" / "b" / "c"
    LocalBlobStore(root)
    assert root.is_dir()


async def test_upload_then_download(store):
    payload = bytes(range(256)) * 1000
    locator = await store.upload("firmware_v1.0.0.bin", io.BytesIO(payload), "application/octet-stream")

    assert locator == "blob://firmware_v1.0.0.bin"
    assert await read_all(store, "firmware_v1.0.0.bin") == payload


async def test_upload_overwrites(store):
    await store.upload("fw.bin", io.BytesIO(b"old contents"), "application/octet-stream")
    await store.upload("fw.bin", io.BytesIO(b"new"), "application/octet-stream")

    assert await read_all(store, "fw.bin") == b"new"
    assert [key async for key in store.list()] == ["fw.bin"]


async def test_download_reports_stored_size(store):
    await store.upload("fw.bin", io.BytesIO(b"old contents"), "application/octet-stream")
    reader = await store.download("fw.bin")
    await store.upload("fw.bin", io.BytesIO(b"new"), "application/octet-stream")

    # The opened file keeps its own length and contents
    assert reader.size == len(b"old contents")
    assert b"".join([chunk async for chunk in reader]) == b"old contents"

    reader = await store.download("fw.bin")
    assert reader.size == 3
    assert b"".join([chunk async for chunk in reader]) == b"new"


async def test_failed_upload_leaves_no_object(store):
    class BrokenStream(io.RawIOBase):
        def read(self, size=-1):
            raise OSError("connection reset")

    with pytest.raises(StorageError):
        await store.upload("fw.bin", BrokenStream(), "application/octet-stream")

    assert [key async for key in store.list()] == []
    assert list(store.root.iterdir()) == []


async def test_download_missing_key(store):
    with pytest.raises(BlobNotFoundError):
        await store.download("nope.bin")


async def test_delete(store):
    await store.upload("fw.bin", io.BytesIO(b"x"), "application/octet-stream")
    await store.delete("fw.bin")

    with pytest.raises(BlobNotFoundError):
        await store.download("fw.bin")
    # Deleting again is a no-op
    await store.delete("fw.bin")


async def test_list_with_prefix(store):
    for key in ["firmware_v1.bin", "firmware_v2.bin", "other.bin", "nested/firmware_v3.bin"]:
        await store.upload(key, io.BytesIO(b"x"), "application/octet-stream")

    assert [key async for key in store.list("firmware_")] == ["firmware_v1.bin", "firmware_v2.bin"]
    assert [key async for key in store.list()] == [
        "firmware_v1.bin",
        "firmware_v2.bin",
        "nested/firmware_v3.bin",
        "other.bin",
    ]
    # Each call starts a fresh listing
    assert len([key async for key in store.list()]) == 4


@pytest.mark.parametrize("key", ["../escape.bin", "/etc/passwd", "", "nested/../../x"])
async def test_rejects_keys_outside_root(store, key):
    with pytest.raises(StorageError):
        await store.upload(key, io.BytesIO(b"x"), "application/octet-stream")


async def test_resolve_url_with_public_base(tmp_path):
    store = LocalBlobStore(tmp_path, public_base_url="https://files.example.com/firmware/")
    assert await store.resolve_url("fw.bin") == "https://files.example.com/firmware/fw.bin"


async def test_close_is_idempotent(store):
    await store.close()
    await store.close()
