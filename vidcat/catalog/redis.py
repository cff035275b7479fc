from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import AsyncIterator

from redis.asyncio import BlockingConnectionPool, Redis

from vidcat.catalog import Catalog, NewVideo, VideoRecord

NEXT_ID_KEY = "video:next_id"
BY_CREATED_KEY = "videos:by_created"


def _record_key(video_id: int) -> str:
    return f"video/{video_id}"


@dataclass
class RedisCatalog(Catalog):
    redis: Redis

    @classmethod
    @asynccontextmanager
    async def connect(cls, dsn: str) -> AsyncIterator[RedisCatalog]:
        pool = BlockingConnectionPool.from_url(dsn)  # type: ignore
        try:
            yield cls(Redis(connection_pool=pool))
        finally:
            await pool.aclose()

    async def add(self, draft: NewVideo) -> VideoRecord:
        video_id = await self.redis.incr(NEXT_ID_KEY)  # type: ignore
        record = VideoRecord.create(video_id, draft, datetime.now(timezone.utc))
        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.set(_record_key(record.id), record.dumps())
            # ids are monotonic, so they order records the same way created_at does
            pipe.zadd(BY_CREATED_KEY, {str(record.id): record.id})
            await pipe.execute()  # type: ignore
        return record

    async def lookup(self, video_id: int) -> VideoRecord | None:
        raw = await self.redis.get(_record_key(video_id))  # type: ignore
        if raw is None:
            return None
        return VideoRecord.loads(raw)

    async def list_recent(self) -> list[VideoRecord]:
        ids = await self.redis.zrevrange(BY_CREATED_KEY, 0, -1)  # type: ignore
        if not ids:
            return []
        raws = await self.redis.mget([_record_key(int(i)) for i in ids])  # type: ignore
        return [VideoRecord.loads(raw) for raw in raws if raw is not None]
