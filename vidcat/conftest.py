import socket
from dataclasses import dataclass, field
from pathlib import Path
from typing import AsyncIterator

import anyio
import pytest
import uvicorn
from httpx import AsyncClient

from vidcat.api import Config, make_app
from vidcat.catalog.memory import MemoryCatalog
from vidcat.storage.local import LocalBlob, LocalBlobStore


@dataclass
class RecordingBlobStore(LocalBlobStore):
    """Keeps every blob it hands out so tests can check they were released."""

    opened: list[LocalBlob] = field(default_factory=list)

    async def open(self, blob_id: str) -> LocalBlob | None:
        blob = await super().open(blob_id)
        if blob is not None:
            self.opened.append(blob)
        return blob


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def store(tmp_path: Path) -> RecordingBlobStore:
    return RecordingBlobStore(root=tmp_path / "uploads")


@pytest.fixture
def opened_blobs(store: RecordingBlobStore) -> list[LocalBlob]:
    return store.opened


@pytest.fixture
def catalog() -> MemoryCatalog:
    return MemoryCatalog()


@pytest.fixture
async def endpoint(store: RecordingBlobStore, catalog: MemoryCatalog) -> AsyncIterator[str]:
    """Fixture to provide the base URL of a running server."""
    app = make_app(store, catalog, Config())
    # find an open port
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("", 0))
        port = s.getsockname()[1]

    host = f"http://127.0.0.1:{port}"

    async with AsyncClient(base_url=host) as client:

        async def is_healthy() -> bool:
            try:
                resp = await client.get("/health")
                return resp.status_code == 200
            except Exception:
                return False

        server = uvicorn.Server(uvicorn.Config(app, host="127.0.0.1", port=port))
        async with anyio.create_task_group() as tg:
            tg.start_soon(server.serve)
            while not (await is_healthy()):
                await anyio.sleep(0.05)

            yield host
            await server.shutdown()
            tg.cancel_scope.cancel()
