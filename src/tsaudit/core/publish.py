from __future__ import annotations

import logging
import math
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass

from tsaudit.core.collaborators import ContentPublisher, IndexWriter
from tsaudit.core.errors import CollaboratorError, ConfigurationError
from tsaudit.core.segments import encode_segments, join_text
from tsaudit.schemas.index import IndexRecord
from tsaudit.schemas.segment import Segment

logger = logging.getLogger(__name__)

INDEX_KEY = "youtube"
MAX_CONTENT_PREVIEW_CHARS = 1000


@dataclass(frozen=True)
class Chunk:
    chunk_start: float
    chunk_end: float
    segments: list[Segment]


def as_content_key(index_key: str, chunk_start: float) -> str:
    start = int(chunk_start) if float(chunk_start).is_integer() else chunk_start
    return f"{index_key}_{start}"


def chunk_transcript(segments: list[Segment], interval: float) -> list[Chunk]:
    """Group segments into interval-aligned chunks keyed by segment start."""
    if interval <= 0:
        raise ConfigurationError(f"Chunk interval must be > 0, got {interval}")
    grouped: dict[float, list[Segment]] = {}
    for segment in segments:
        chunk_start = math.floor(segment.start / interval) * interval
        grouped.setdefault(float(chunk_start), []).append(segment)
    return [
        Chunk(chunk_start=start, chunk_end=start + interval, segments=grouped[start])
        for start in sorted(grouped)
    ]


def _build_record(video_id: str, chunk: Chunk, content_id: str) -> IndexRecord:
    return IndexRecord(
        content_id=content_id,
        video_id=video_id,
        chunk_start=chunk.chunk_start,
        chunk_end=chunk.chunk_end,
        content_key=as_content_key(INDEX_KEY, chunk.chunk_start),
        content=join_text(chunk.segments)[:MAX_CONTENT_PREVIEW_CHARS],
    )


def publish_transcript(
    video_id: str,
    segments: list[Segment],
    *,
    publisher: ContentPublisher,
    writer: IndexWriter,
    interval: float,
    max_concurrency: int = 3,
) -> list[IndexRecord]:
    if max_concurrency <= 0:
        raise ConfigurationError(f"max_concurrency must be > 0, got {max_concurrency}")
    chunks = chunk_transcript(segments, interval)
    if not chunks:
        return []

    content_ids: list[str | None] = [None] * len(chunks)
    worker_count = min(max_concurrency, len(chunks))
    with ThreadPoolExecutor(max_workers=worker_count) as executor:
        future_to_index = {
            executor.submit(publisher.add, encode_segments(chunk.segments)): index
            for index, chunk in enumerate(chunks)
        }
        for future in as_completed(future_to_index):
            index = future_to_index[future]
            try:
                content_ids[index] = future.result()
            except Exception as exc:
                raise CollaboratorError(
                    f"Upload failed for chunk starting at {chunks[index].chunk_start}s: {exc}"
                ) from exc

    records = [
        _build_record(video_id, chunk, content_id)
        for chunk, content_id in zip(chunks, content_ids)
        if content_id is not None
    ]
    if len(records) != len(chunks):
        raise CollaboratorError("Chunk upload produced incomplete results.")
    try:
        writer.write_indices(records)
    except Exception as exc:
        raise CollaboratorError(f"Ledger write failed: {exc}") from exc
    logger.info("Published %d chunks for %s", len(records), video_id)
    return records
