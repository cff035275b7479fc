from collections.abc import AsyncIterable, AsyncIterator
from typing import Protocol


class Blob(Protocol):
    size: int

    async def read_at(self, offset: int, length: int) -> bytes: ...

    def iter_from(self, offset: int, chunk_size: int) -> AsyncIterator[bytes]: ...

    async def aclose(self) -> None: ...


class BlobStore(Protocol):
    async def put(self, blob_id: str, chunks: AsyncIterable[bytes]) -> int: ...

    async def open(self, blob_id: str) -> Blob | None: ...

    async def size(self, blob_id: str) -> int | None: ...

    async def delete(self, blob_id: str) -> None: ...
