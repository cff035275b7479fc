from collections.abc import AsyncIterable
from dataclasses import dataclass
from pathlib import Path

import pytest

from vidcat.catalog import NewVideo, VideoRecord
from vidcat.catalog.memory import MemoryCatalog
from vidcat.errors import StorageFailure, UnsupportedMediaType
from vidcat.ingest import ingest_video, stored_file_id
from vidcat.storage.local import LocalBlobStore
from vidcat.storage.memory import InMemoryBlobStore


@dataclass
class FakeUpload:
    filename: str | None
    content_type: str | None
    data: bytes
    pos: int = 0

    async def read(self, size: int = -1) -> bytes:
        end = len(self.data) if size < 0 else self.pos + size
        chunk = self.data[self.pos : end]
        self.pos += len(chunk)
        return chunk


class BrokenStore(InMemoryBlobStore):
    async def put(self, blob_id: str, chunks: AsyncIterable[bytes]) -> int:
        raise OSError("disk full")


class BrokenCatalog(MemoryCatalog):
    async def add(self, draft: NewVideo) -> VideoRecord:
        raise ConnectionError("catalog unavailable")


def test_stored_file_id_keeps_extension() -> None:
    blob_id = stored_file_id("holiday.final.mp4")
    assert blob_id.endswith(".mp4")
    assert len(blob_id) == 32 + len(".mp4")
    assert stored_file_id("holiday.mp4") != stored_file_id("holiday.mp4")


def test_stored_file_id_without_extension() -> None:
    assert "." not in stored_file_id("noext")
    assert "." not in stored_file_id(None)


@pytest.mark.parametrize(
    "name,extension",
    [("clip.v2/take", ""), ("dir.d/clip.webm", ".webm"), ("holiday.final.mp4", ".mp4")],
)
def test_stored_file_id_uses_final_component(name: str, extension: str) -> None:
    blob_id = stored_file_id(name)
    assert "/" not in blob_id
    assert blob_id[32:] == extension


@pytest.mark.anyio
async def test_ingest_stores_blob_and_record() -> None:
    store = InMemoryBlobStore()
    catalog = MemoryCatalog()
    data = b"\x00\x01" * 2_000_000
    record = await ingest_video(
        FakeUpload("clip.mov", "video/quicktime", data), "Clip", "desc", store, catalog
    )
    assert record.file_name == "clip.mov"
    assert record.file_size == len(data)
    assert record.content_type == "video/quicktime"
    assert record.stored_file_id.endswith(".mov")
    assert store.storage[record.stored_file_id] == data
    assert await catalog.lookup(record.id) == record


@pytest.mark.anyio
@pytest.mark.parametrize("content_type", ["image/png", "video/x-msvideo", None])
async def test_ingest_rejects_content_type(content_type: str | None) -> None:
    store = InMemoryBlobStore()
    catalog = MemoryCatalog()
    with pytest.raises(UnsupportedMediaType):
        await ingest_video(FakeUpload("x.bin", content_type, b"x"), "X", None, store, catalog)
    assert store.storage == {}
    assert await catalog.list_recent() == []


@pytest.mark.anyio
async def test_ingest_storage_failure() -> None:
    catalog = MemoryCatalog()
    with pytest.raises(StorageFailure, match="Could not store file: clip.mp4"):
        await ingest_video(
            FakeUpload("clip.mp4", "video/mp4", b"x"), "X", None, BrokenStore(), catalog
        )
    assert await catalog.list_recent() == []


@pytest.mark.anyio
async def test_ingest_filename_with_slash(tmp_path: Path) -> None:
    store = LocalBlobStore(root=tmp_path / "uploads")
    catalog = MemoryCatalog()
    record = await ingest_video(
        FakeUpload("clip.v2/take", "video/mp4", b"abc"), "Take", None, store, catalog
    )
    assert "/" not in record.stored_file_id
    assert record.file_name == "clip.v2/take"
    assert (store.root / record.stored_file_id).read_bytes() == b"abc"


@pytest.mark.anyio
async def test_ingest_catalog_failure_removes_blob() -> None:
    store = InMemoryBlobStore()
    with pytest.raises(ConnectionError):
        await ingest_video(
            FakeUpload("clip.mp4", "video/mp4", b"abc"), "X", None, store, BrokenCatalog()
        )
    assert store.storage == {}
