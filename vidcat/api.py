import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, FastAPI, File, Form, Header, Request, Response, UploadFile
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.types import Receive, Scope, Send

from vidcat.catalog import Catalog, VideoRecord
from vidcat.depends import Injected, bind
from vidcat.errors import RangeNotSatisfiable, ResourceNotFound, VidcatError
from vidcat.ingest import ingest_video
from vidcat.ranges import WINDOW_SIZE, parse_range, resolve_range
from vidcat.responder import (
    DEFAULT_CHUNK_SIZE,
    ContentDescriptor,
    StreamResponse,
    respond,
    unsatisfiable_headers,
)
from vidcat.storage import Blob, BlobStore

logger = logging.getLogger(__name__)

router = APIRouter()


@dataclass
class Config:
    window_size: int = WINDOW_SIZE
    chunk_size: int = DEFAULT_CHUNK_SIZE


@dataclass
class VideoResponse:
    id: int
    title: str
    description: str | None
    file_name: str
    file_size: int
    content_type: str
    created_at: datetime

    @classmethod
    def from_record(cls, record: VideoRecord) -> "VideoResponse":
        return cls(
            id=record.id,
            title=record.title,
            description=record.description,
            file_name=record.file_name,
            file_size=record.file_size,
            content_type=record.content_type,
            created_at=record.created_at,
        )


@router.get("/health")
async def health() -> Response:
    return Response(status_code=200)


@router.post("/api/videos", status_code=201)
async def upload_video(
    file: Annotated[UploadFile, File()],
    title: Annotated[str, Form()],
    store: Injected[BlobStore],
    catalog: Injected[Catalog],
    description: Annotated[str | None, Form()] = None,
) -> VideoResponse:
    record = await ingest_video(file, title, description, store, catalog)
    return VideoResponse.from_record(record)


@router.get("/api/videos")
async def list_videos(catalog: Injected[Catalog]) -> list[VideoResponse]:
    return [VideoResponse.from_record(r) for r in await catalog.list_recent()]


async def get_record(video_id: int, catalog: Catalog) -> VideoRecord:
    record = await catalog.lookup(video_id)
    if record is None:
        raise ResourceNotFound(f"Video {video_id} not found")
    return record


@router.get("/api/videos/{video_id}")
async def get_video(video_id: int, catalog: Injected[Catalog]) -> VideoResponse:
    return VideoResponse.from_record(await get_record(video_id, catalog))


async def open_blob(record: VideoRecord, store: BlobStore) -> Blob:
    blob = await store.open(record.stored_file_id)
    if blob is None:
        logger.error("Video %d points at missing blob %s", record.id, record.stored_file_id)
        raise ResourceNotFound(f"Video {record.id} not found")
    return blob


class BlobStreamingResponse(StreamingResponse):
    """Releases the blob however the response ends, client disconnects included."""

    def __init__(self, response: StreamResponse, blob: Blob) -> None:
        super().__init__(
            response.body,
            status_code=response.status,
            headers=response.headers(),
            media_type=response.media_type,
        )
        self.blob = blob

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            await self.blob.aclose()


def to_http(response: StreamResponse, blob: Blob) -> Response:
    if isinstance(response.body, bytes):
        return Response(
            content=response.body,
            status_code=response.status,
            headers=response.headers(),
            media_type=response.media_type,
        )
    return BlobStreamingResponse(response, blob)


@router.get("/api/videos/{video_id}/stream")
async def stream_video(
    video_id: int,
    catalog: Injected[Catalog],
    store: Injected[BlobStore],
    config: Injected[Config],
    range: Annotated[str | None, Header()] = None,
) -> Response:
    record = await get_record(video_id, catalog)
    blob = await open_blob(record, store)
    try:
        descriptor = ContentDescriptor(total_length=blob.size, media_type=record.content_type)
        byte_range = resolve_range(parse_range(range), descriptor.total_length, config.window_size)
    except VidcatError:
        await blob.aclose()
        raise
    logger.debug("Video %d: resolved %r to %r", video_id, range, byte_range)
    response = await respond(descriptor, byte_range, blob, config.chunk_size)
    return to_http(response, blob)


@router.head("/api/videos/{video_id}/stream")
async def head_video(
    video_id: int,
    catalog: Injected[Catalog],
    store: Injected[BlobStore],
) -> Response:
    record = await get_record(video_id, catalog)
    size = await store.size(record.stored_file_id)
    if size is None:
        raise ResourceNotFound(f"Video {video_id} not found")
    return Response(
        headers={
            "Content-Type": record.content_type,
            "Content-Length": str(size),
            "Accept-Ranges": "bytes",
        }
    )


async def handle_vidcat_error(request: Request, exc: VidcatError) -> Response:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    else:
        logger.warning("%s %s rejected: %s", request.method, request.url.path, exc.detail)
    if isinstance(exc, RangeNotSatisfiable):
        return Response(status_code=416, headers=unsatisfiable_headers(exc.total))
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


def make_app(
    store: BlobStore,
    catalog: Catalog,
    config: Config,
) -> FastAPI:
    app = FastAPI()
    app.include_router(router)
    app.add_exception_handler(VidcatError, handle_vidcat_error)
    bind(app, BlobStore, store)
    bind(app, Catalog, catalog)
    bind(app, Config, config)
    return app
