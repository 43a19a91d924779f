from __future__ import annotations

from pathlib import Path
from typing import Protocol

from tsaudit.schemas.index import IndexRecord, PlatformMetadata
from tsaudit.schemas.segment import Transcript


class TranscriptGenerator(Protocol):
    def generate_transcript(self, audio_path: Path) -> Transcript:
        ...


class PlatformMetadataSource(Protocol):
    def extract_platform_metadata(self, video_id: str) -> PlatformMetadata:
        ...


class AudioSource(Protocol):
    def extract_audio(self, video_id: str, start_s: float, end_s: float) -> Path:
        ...


class ContentStore(Protocol):
    def fetch(self, content_id: str) -> bytes:
        ...


class ContentPublisher(Protocol):
    def add(self, content: bytes) -> str:
        ...


class IndexLedger(Protocol):
    def load_index_with_video(
        self,
        video_id: str,
        chunk_start: float,
        chunk_end: float | None = None,
    ) -> list[IndexRecord]:
        ...


class IndexWriter(Protocol):
    def write_indices(self, records: list[IndexRecord]) -> None:
        ...
