from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Protocol


@dataclass(frozen=True)
class NewVideo:
    title: str
    description: str | None
    file_name: str
    stored_file_id: str
    content_type: str
    file_size: int


@dataclass(frozen=True)
class VideoRecord:
    id: int
    title: str
    description: str | None
    file_name: str
    stored_file_id: str
    content_type: str
    file_size: int
    created_at: datetime

    @classmethod
    def create(cls, id: int, draft: NewVideo, created_at: datetime) -> VideoRecord:
        return cls(id=id, created_at=created_at, **asdict(draft))

    def dumps(self) -> bytes:
        data = asdict(self)
        data["created_at"] = self.created_at.isoformat()
        return json.dumps(data).encode()

    @classmethod
    def loads(cls, raw: bytes) -> VideoRecord:
        data = json.loads(raw)
        data["created_at"] = datetime.fromisoformat(data["created_at"])
        return cls(**data)


class Catalog(Protocol):
    async def add(self, draft: NewVideo) -> VideoRecord: ...

    async def lookup(self, video_id: int) -> VideoRecord | None: ...

    async def list_recent(self) -> list[VideoRecord]: ...
