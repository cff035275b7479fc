from __future__ import annotations

import logging
import uuid
from collections.abc import AsyncIterator
from pathlib import PurePath
from typing import Protocol

from vidcat.catalog import Catalog, NewVideo, VideoRecord
from vidcat.errors import StorageFailure, UnsupportedMediaType
from vidcat.storage import BlobStore

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = frozenset({"video/mp4", "video/webm", "video/quicktime"})

UPLOAD_CHUNK_SIZE = 1024 * 1024


class Upload(Protocol):
    """The parts of `fastapi.UploadFile` ingestion relies on."""

    filename: str | None
    content_type: str | None

    async def read(self, size: int = -1) -> bytes: ...


def stored_file_id(original_name: str | None) -> str:
    extension = PurePath(original_name).suffix if original_name else ""
    return uuid.uuid4().hex + extension


async def _chunks(upload: Upload) -> AsyncIterator[bytes]:
    while chunk := await upload.read(UPLOAD_CHUNK_SIZE):
        yield chunk


async def ingest_video(
    upload: Upload,
    title: str,
    description: str | None,
    store: BlobStore,
    catalog: Catalog,
) -> VideoRecord:
    if upload.content_type not in ALLOWED_CONTENT_TYPES:
        logger.warning("Rejected upload %r with type %r", upload.filename, upload.content_type)
        raise UnsupportedMediaType("Invalid file type. Allowed types: mp4, webm, mov")

    blob_id = stored_file_id(upload.filename)
    try:
        size = await store.put(blob_id, _chunks(upload))
    except OSError as e:
        logger.exception("Could not store %r as %s", upload.filename, blob_id)
        await store.delete(blob_id)
        raise StorageFailure(f"Could not store file: {upload.filename}") from e

    try:
        record = await catalog.add(
            NewVideo(
                title=title,
                description=description,
                file_name=upload.filename or blob_id,
                stored_file_id=blob_id,
                content_type=upload.content_type,
                file_size=size,
            )
        )
    except Exception:
        logger.exception("Could not catalog %s, removing the stored blob", blob_id)
        await store.delete(blob_id)
        raise
    logger.info("Ingested video %d (%s, %d bytes)", record.id, blob_id, size)
    return record
