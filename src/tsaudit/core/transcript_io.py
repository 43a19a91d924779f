from __future__ import annotations

import json
import re
from pathlib import Path

from tsaudit.core.segments import segments_from_payload
from tsaudit.schemas.segment import Segment, Transcript

SUPPORTED_TRANSCRIPT_SUFFIXES = (".json", ".srt")

_SRT_TIMING_PATTERN = re.compile(
    r"^\s*(\d{1,2}:\d{2}:\d{2}[,.]\d{3})\s*-->\s*(\d{1,2}:\d{2}:\d{2}[,.]\d{3})"
)


def _parse_srt_time(value: str) -> float:
    hh, mm, rest = value.replace(".", ",").split(":")
    ss, ms = rest.split(",")
    return int(hh) * 3600 + int(mm) * 60 + int(ss) + int(ms) / 1000.0


def parse_srt(content: str) -> list[Segment]:
    segments: list[Segment] = []
    for block in re.split(r"\r?\n\s*\r?\n", content.strip()):
        lines = [line.strip() for line in block.splitlines() if line.strip()]
        # The cue number line is optional.
        for timing_index, line in enumerate(lines[:2]):
            match = _SRT_TIMING_PATTERN.match(line)
            if match:
                break
        else:
            continue
        start = _parse_srt_time(match.group(1))
        end = _parse_srt_time(match.group(2))
        if end < start:
            continue
        # Cue lines are flattened so the text tokenizes like ASR output.
        text = " ".join(lines[timing_index + 1 :])
        segments.append(Segment(start=start, end=end, text=text))
    return segments


def load_transcript(path: Path) -> Transcript:
    suffix = path.suffix.lower()
    if suffix not in SUPPORTED_TRANSCRIPT_SUFFIXES:
        raise ValueError(
            f"Unsupported transcript format '{path.suffix}'. "
            f"Allowed: {', '.join(SUPPORTED_TRANSCRIPT_SUFFIXES)}"
        )
    content = path.read_text(encoding="utf-8-sig")
    if suffix == ".srt":
        segments = parse_srt(content)
        duration = segments[-1].end if segments else None
        return Transcript(segments=segments, duration=duration)

    payload = json.loads(content)
    duration = payload.get("duration") if isinstance(payload, dict) else None
    return Transcript(
        segments=segments_from_payload(payload),
        duration=float(duration) if duration is not None else None,
    )
