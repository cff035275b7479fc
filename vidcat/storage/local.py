from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterable, AsyncIterator
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

import anyio.to_thread

from vidcat.errors import ResourceNotFound
from vidcat.storage import BlobStore

logger = logging.getLogger(__name__)


def _read_at(file: BinaryIO, offset: int, length: int) -> bytes:
    file.seek(offset)
    return file.read(length)


@dataclass
class LocalBlob:
    file: BinaryIO
    size: int

    @property
    def closed(self) -> bool:
        return self.file.closed

    async def read_at(self, offset: int, length: int) -> bytes:
        return await anyio.to_thread.run_sync(_read_at, self.file, offset, length)

    async def iter_from(self, offset: int, chunk_size: int) -> AsyncIterator[bytes]:
        await anyio.to_thread.run_sync(self.file.seek, offset)
        while True:
            chunk = await anyio.to_thread.run_sync(self.file.read, chunk_size)
            if not chunk:
                return
            yield chunk

    async def aclose(self) -> None:
        # no await: must still run when the caller is being cancelled
        self.file.close()


@dataclass
class LocalBlobStore(BlobStore):
    """Blobs stored as files directly under `root`."""

    root: Path

    def __post_init__(self) -> None:
        self.root = Path(self.root).resolve()
        self.root.mkdir(parents=True, exist_ok=True)
        logger.info("Blob store root: %s", self.root)

    def _path(self, blob_id: str) -> Path | None:
        path = (self.root / blob_id).resolve()
        # anything that escapes the root is reported as missing
        if self.root not in path.parents:
            return None
        return path

    async def put(self, blob_id: str, chunks: AsyncIterable[bytes]) -> int:
        path = self._path(blob_id)
        if path is None:
            raise ResourceNotFound(f"Invalid blob id: {blob_id}")
        written = 0
        file = await anyio.to_thread.run_sync(path.open, "wb")
        try:
            async for chunk in chunks:
                await anyio.to_thread.run_sync(file.write, chunk)
                written += len(chunk)
        finally:
            await anyio.to_thread.run_sync(file.close)
        logger.info("Stored blob %s (%d bytes)", blob_id, written)
        return written

    async def open(self, blob_id: str) -> LocalBlob | None:
        path = self._path(blob_id)
        if path is None:
            return None
        try:
            file = await anyio.to_thread.run_sync(path.open, "rb")
        except (FileNotFoundError, IsADirectoryError):
            return None
        size = os.fstat(file.fileno()).st_size
        return LocalBlob(file=file, size=size)

    async def size(self, blob_id: str) -> int | None:
        path = self._path(blob_id)
        if path is None:
            return None
        try:
            stat = await anyio.to_thread.run_sync(path.stat)
        except FileNotFoundError:
            return None
        return stat.st_size

    async def delete(self, blob_id: str) -> None:
        path = self._path(blob_id)
        if path is None:
            return
        await anyio.to_thread.run_sync(lambda: path.unlink(missing_ok=True))
