from dataclasses import dataclass, field
from datetime import datetime, timezone

from vidcat.catalog import Catalog, NewVideo, VideoRecord


@dataclass
class MemoryCatalog(Catalog):
    records: dict[int, VideoRecord] = field(default_factory=dict)
    next_id: int = 1

    async def add(self, draft: NewVideo) -> VideoRecord:
        record = VideoRecord.create(self.next_id, draft, datetime.now(timezone.utc))
        self.records[record.id] = record
        self.next_id += 1
        return record

    async def lookup(self, video_id: int) -> VideoRecord | None:
        return self.records.get(video_id)

    async def list_recent(self) -> list[VideoRecord]:
        # ids break ties between records created within the same clock tick
        return sorted(
            self.records.values(),
            key=lambda r: (r.created_at, r.id),
            reverse=True,
        )
