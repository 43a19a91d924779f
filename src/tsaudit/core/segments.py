from __future__ import annotations

import json
from collections.abc import Iterable, Sequence
from typing import Any

from tsaudit.core.errors import EmptyInputError
from tsaudit.schemas.segment import Segment


def clip(segments: Iterable[Segment], start_s: float, end_s: float) -> list[Segment]:
    """Keep segments that start inside [start_s, end_s].

    Only the segment start is checked so a segment beginning just inside
    the window is not dropped for running past its end.
    """
    return [segment for segment in segments if start_s <= segment.start <= end_s]


def join_text(segments: Iterable[Segment]) -> str:
    return " ".join(segment.text for segment in segments)


def stitch(segments: Sequence[Segment]) -> Segment:
    if not segments:
        raise EmptyInputError("Cannot stitch an empty segment sequence.")
    return Segment(
        start=segments[0].start,
        end=segments[-1].end,
        text=join_text(segments),
    )


def shift(segments: Iterable[Segment], offset_s: float) -> list[Segment]:
    return [
        Segment(start=segment.start + offset_s, end=segment.end + offset_s, text=segment.text)
        for segment in segments
    ]


def segment_from_mapping(item: dict[str, Any]) -> Segment:
    try:
        return Segment(
            start=float(item["start"]),
            end=float(item["end"]),
            text=str(item.get("text") or ""),
        )
    except (KeyError, TypeError) as exc:
        raise ValueError(f"Malformed segment entry: {item!r}") from exc


def segments_from_payload(payload: Any) -> list[Segment]:
    if isinstance(payload, dict):
        payload = payload.get("segments", [])
    if not isinstance(payload, list):
        raise ValueError("Segment payload must be a JSON array of segments.")
    return [segment_from_mapping(item) for item in payload]


def segment_to_mapping(segment: Segment) -> dict[str, Any]:
    return {"start": segment.start, "end": segment.end, "text": segment.text}


def encode_segments(segments: Iterable[Segment]) -> bytes:
    return json.dumps(
        [segment_to_mapping(segment) for segment in segments],
        ensure_ascii=False,
    ).encode("utf-8")


def decode_segments(raw: bytes) -> list[Segment]:
    try:
        payload = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ValueError(f"Chunk payload is not valid JSON: {exc}") from exc
    return segments_from_payload(payload)
