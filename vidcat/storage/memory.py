from collections.abc import AsyncIterable, AsyncIterator
from dataclasses import dataclass, field

from vidcat.storage import BlobStore


@dataclass
class MemoryBlob:
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    async def read_at(self, offset: int, length: int) -> bytes:
        return self.data[offset : offset + length]

    async def iter_from(self, offset: int, chunk_size: int) -> AsyncIterator[bytes]:
        for pos in range(offset, len(self.data), chunk_size):
            yield self.data[pos : pos + chunk_size]

    async def aclose(self) -> None:
        pass


@dataclass
class InMemoryBlobStore(BlobStore):
    storage: dict[str, bytes] = field(default_factory=dict)

    async def put(self, blob_id: str, chunks: AsyncIterable[bytes]) -> int:
        body = bytearray()
        async for chunk in chunks:
            body.extend(chunk)
        self.storage[blob_id] = bytes(body)
        return len(body)

    async def open(self, blob_id: str) -> MemoryBlob | None:
        data = self.storage.get(blob_id)
        if data is None:
            return None
        return MemoryBlob(data)

    async def size(self, blob_id: str) -> int | None:
        data = self.storage.get(blob_id)
        return None if data is None else len(data)

    async def delete(self, blob_id: str) -> None:
        self.storage.pop(blob_id, None)
