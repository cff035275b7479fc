import logging
from contextlib import AsyncExitStack
from pathlib import Path

import anyio

from vidcat.api import Config, make_app
from vidcat.catalog import Catalog
from vidcat.config import Settings
from vidcat.storage import BlobStore

logger = logging.getLogger(__name__)


async def open_store(settings: Settings, stack: AsyncExitStack) -> BlobStore:
    if settings.storage_backend == "s3":
        from vidcat.storage.s3 import S3BlobStore

        return await stack.enter_async_context(
            S3BlobStore.connect(
                access_key_id=settings.s3_access_key_id,
                access_key_secret=settings.s3_access_key_secret,
                region=settings.s3_region,
                bucket=settings.s3_bucket,
                endpoint=settings.s3_endpoint,
            )
        )
    if settings.storage_backend == "memory":
        from vidcat.storage.memory import InMemoryBlobStore

        return InMemoryBlobStore()

    from vidcat.storage.local import LocalBlobStore

    return LocalBlobStore(root=Path(settings.upload_dir))


async def open_catalog(settings: Settings, stack: AsyncExitStack) -> Catalog:
    if settings.catalog_backend == "redis":
        from vidcat.catalog.redis import RedisCatalog

        return await stack.enter_async_context(RedisCatalog.connect(settings.redis_url))

    from vidcat.catalog.memory import MemoryCatalog

    return MemoryCatalog()


async def main() -> None:
    import uvicorn

    settings = Settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    async with AsyncExitStack() as stack:
        store = await open_store(settings, stack)
        catalog = await open_catalog(settings, stack)
        app = make_app(
            store,
            catalog,
            Config(window_size=settings.window_size, chunk_size=settings.chunk_size),
        )
        logger.info(
            "Serving on %s:%d (storage=%s, catalog=%s)",
            settings.host,
            settings.port,
            settings.storage_backend,
            settings.catalog_backend,
        )

        config = uvicorn.Config(app, host=settings.host, port=settings.port)
        server = uvicorn.Server(config)
        await server.serve()


if __name__ == "__main__":
    anyio.run(main)
