from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class IndexRecord:
    content_id: str
    video_id: str
    chunk_start: float
    chunk_end: float
    content_key: str
    content: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "content_id": self.content_id,
            "video_id": self.video_id,
            "chunk_start": self.chunk_start,
            "chunk_end": self.chunk_end,
            "content_key": self.content_key,
            "content": self.content,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> IndexRecord:
        return cls(
            content_id=str(payload["content_id"]),
            video_id=str(payload["video_id"]),
            chunk_start=float(payload["chunk_start"]),
            chunk_end=float(payload["chunk_end"]),
            content_key=str(payload.get("content_key", "")),
            content=str(payload.get("content", "")),
        )


@dataclass(frozen=True)
class PlatformMetadata:
    video_id: str
    duration: float | None = None
