"""Turns a resolved byte range into status, headers and payload.

Partial content is served from a single positioned read of exactly the
requested bytes. Full content is streamed from the blob in chunks so large
files are never held in memory.
"""
from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import aclosing
from dataclasses import dataclass

from vidcat.errors import IncompleteRead
from vidcat.ranges import ByteRange
from vidcat.storage import Blob

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class ContentDescriptor:
    total_length: int
    media_type: str


@dataclass
class StreamResponse:
    status: int
    content_range: tuple[int, int, int] | None
    content_length: int
    media_type: str
    body: bytes | AsyncIterator[bytes]

    def headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": self.media_type,
            "Content-Length": str(self.content_length),
            "Accept-Ranges": "bytes",
        }
        if self.content_range is not None:
            start, end, total = self.content_range
            headers["Content-Range"] = f"bytes {start}-{end}/{total}"
        return headers


def unsatisfiable_headers(total: int) -> dict[str, str]:
    return {"Content-Range": f"bytes */{total}", "Accept-Ranges": "bytes"}


async def _stream_blob(blob: Blob, total: int, chunk_size: int) -> AsyncIterator[bytes]:
    sent = 0
    try:
        async with aclosing(blob.iter_from(0, chunk_size)) as chunks:
            async for chunk in chunks:
                chunk = chunk[: total - sent]
                sent += len(chunk)
                yield chunk
                if sent >= total:
                    break
        if sent < total:
            logger.error("Blob ended after %d of %d bytes", sent, total)
            raise IncompleteRead(f"Blob ended after {sent} of {total} bytes")
    finally:
        await blob.aclose()


def respond_full(
    descriptor: ContentDescriptor,
    blob: Blob,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> StreamResponse:
    """The body takes ownership of `blob` and closes it once iterated."""
    return StreamResponse(
        status=200,
        content_range=None,
        content_length=descriptor.total_length,
        media_type=descriptor.media_type,
        body=_stream_blob(blob, descriptor.total_length, chunk_size),
    )


async def respond_partial(
    descriptor: ContentDescriptor,
    byte_range: ByteRange,
    blob: Blob,
) -> StreamResponse:
    length = len(byte_range)
    data = await blob.read_at(byte_range.start, length)
    if len(data) != length:
        raise IncompleteRead(
            f"Expected {length} bytes at offset {byte_range.start}, got {len(data)}"
        )
    return StreamResponse(
        status=206,
        content_range=(byte_range.start, byte_range.end, descriptor.total_length),
        content_length=length,
        media_type=descriptor.media_type,
        body=data,
    )


async def respond(
    descriptor: ContentDescriptor,
    byte_range: ByteRange | None,
    blob: Blob,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> StreamResponse:
    if byte_range is None:
        return respond_full(descriptor, blob, chunk_size)
    try:
        return await respond_partial(descriptor, byte_range, blob)
    finally:
        await blob.aclose()
