from __future__ import annotations

from collections.abc import AsyncIterable, AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from aioaws.s3 import S3Client, S3Config
from httpx import AsyncClient

from vidcat.storage import BlobStore


@dataclass
class S3Blob:
    client: AsyncClient
    url: str
    size: int

    async def read_at(self, offset: int, length: int) -> bytes:
        headers = {"Range": f"bytes={offset}-{offset + length - 1}"}
        response = await self.client.get(self.url, headers=headers)
        if response.status_code == 416:
            return b""
        response.raise_for_status()
        return response.content

    async def iter_from(self, offset: int, chunk_size: int) -> AsyncIterator[bytes]:
        headers = {"Range": f"bytes={offset}-"}
        async with self.client.stream("GET", self.url, headers=headers) as response:
            response.raise_for_status()
            async for chunk in response.aiter_bytes(chunk_size):
                yield chunk

    async def aclose(self) -> None:
        pass


@dataclass
class S3BlobStore(BlobStore):
    client: AsyncClient
    access_key_id: str
    access_key_secret: str
    region: str
    bucket: str
    endpoint: str | None

    @classmethod
    @asynccontextmanager
    async def connect(
        cls,
        access_key_id: str,
        access_key_secret: str,
        region: str,
        bucket: str,
        endpoint: str | None = None,
    ) -> AsyncIterator[S3BlobStore]:
        async with AsyncClient() as client:
            yield cls(client, access_key_id, access_key_secret, region, bucket, endpoint)

    def _get_client(self) -> S3Client:
        return S3Client(
            self.client,
            S3Config(
                aws_access_key=self.access_key_id,
                aws_secret_key=self.access_key_secret,
                aws_region=self.region,
                aws_s3_bucket=self.bucket,
                aws_host=self.endpoint,
            ),
        )

    async def _probe(self, url: str) -> int | None:
        # a one byte ranged GET tells us the total length without a body
        response = await self.client.get(url, headers={"Range": "bytes=0-0"})
        if response.status_code == 404:
            return None
        if response.status_code == 416:
            # zero length object
            return 0
        response.raise_for_status()
        resp_range = response.headers.get("Content-Range")
        if resp_range:
            return int(resp_range.split("/")[1])
        return len(response.content)

    async def put(self, blob_id: str, chunks: AsyncIterable[bytes]) -> int:
        body = bytearray()
        async for chunk in chunks:
            body.extend(chunk)
        await self._get_client().upload(blob_id, bytes(body))
        return len(body)

    async def open(self, blob_id: str) -> S3Blob | None:
        url = self._get_client().signed_download_url(blob_id, max_age=3600)
        size = await self._probe(url)
        if size is None:
            return None
        return S3Blob(self.client, url, size)

    async def size(self, blob_id: str) -> int | None:
        url = self._get_client().signed_download_url(blob_id)
        return await self._probe(url)

    async def delete(self, blob_id: str) -> None:
        await self._get_client().delete(blob_id)
