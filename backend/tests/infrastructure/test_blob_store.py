"""LocalBlobStore — unique keys, chunked streaming, idempotent delete."""

import io

from datanest.infrastructure.blob_store import LocalBlobStore


async def _read_all(store: LocalBlobStore, key: str) -> bytes:
    return b"".join([chunk async for chunk in store.open_read_stream(key)])


async def test_put_then_stream_round_trip(tmp_path):
    store = LocalBlobStore(tmp_path, chunk_size=4)

    key = await store.put(io.BytesIO(b"0123456789"), "Data.CSV")

    assert key.endswith(".csv")
    assert await store.exists(key)
    chunks = [c async for c in store.open_read_stream(key)]
    assert chunks == [b"0123", b"4567", b"89"]


async def test_put_never_overwrites(tmp_path):
    store = LocalBlobStore(tmp_path)

    first = await store.put(io.BytesIO(b"a"), "same.csv")
    second = await store.put(io.BytesIO(b"b"), "same.csv")

    assert first != second
    assert await _read_all(store, first) == b"a"
    assert await _read_all(store, second) == b"b"


async def test_keys_cannot_escape_root(tmp_path):
    store = LocalBlobStore(tmp_path / "uploads")
    key = await store.put(io.BytesIO(b"x"), "f.csv")

    assert await store.exists(f"../../{key}")
    assert not await store.exists("../outside.txt")


async def test_delete_is_idempotent(tmp_path):
    store = LocalBlobStore(tmp_path)
    key = await store.put(io.BytesIO(b"x"), "f.csv")

    await store.delete(key)
    await store.delete(key)

    assert not await store.exists(key)
