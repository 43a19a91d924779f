from __future__ import annotations

import pytest

from tsaudit.core.errors import EmptyInputError
from tsaudit.core.segments import (
    clip,
    decode_segments,
    encode_segments,
    join_text,
    shift,
    stitch,
)
from tsaudit.schemas.segment import Segment

SEGMENTS = [
    Segment(start=0.0, end=4.0, text="first"),
    Segment(start=4.0, end=9.5, text="second"),
    Segment(start=9.8, end=12.0, text="third"),
    Segment(start=12.0, end=15.0, text="fourth"),
]


def test_clip_filters_on_segment_start_inclusive() -> None:
    clipped = clip(SEGMENTS, 4.0, 12.0)
    assert [segment.text for segment in clipped] == ["second", "third", "fourth"]


def test_clip_keeps_segment_that_runs_past_window_end() -> None:
    clipped = clip(SEGMENTS, 9.0, 10.0)
    assert [segment.text for segment in clipped] == ["third"]
    assert clipped[0].end > 10.0


def test_clip_returns_empty_for_window_without_starts() -> None:
    assert clip(SEGMENTS, 20.0, 30.0) == []


def test_stitch_spans_first_start_to_last_end() -> None:
    stitched = stitch(SEGMENTS[1:3])
    assert stitched == Segment(start=4.0, end=12.0, text="second third")


def test_stitch_single_segment_is_identity() -> None:
    assert stitch([SEGMENTS[0]]) == SEGMENTS[0]


def test_stitch_rejects_empty_sequence() -> None:
    with pytest.raises(EmptyInputError):
        stitch([])


def test_join_text_keeps_raw_segment_text() -> None:
    segments = [
        Segment(start=0.0, end=1.0, text=" Hello"),
        Segment(start=1.0, end=2.0, text="world."),
    ]
    assert join_text(segments) == " Hello world."


def test_shift_moves_segments_by_offset() -> None:
    shifted = shift(SEGMENTS[:1], 30.0)
    assert shifted == [Segment(start=30.0, end=34.0, text="first")]


def test_decode_segments_reads_json_array() -> None:
    raw = b'[{"start": 1, "end": 2.5, "text": "one"}, {"start": 3, "end": 4, "text": null}]'
    assert decode_segments(raw) == [
        Segment(start=1.0, end=2.5, text="one"),
        Segment(start=3.0, end=4.0, text=""),
    ]


def test_decode_segments_preserves_encoded_chunk() -> None:
    assert decode_segments(encode_segments(SEGMENTS)) == SEGMENTS


@pytest.mark.parametrize(
    "raw",
    [b"not json", b'{"segments": 3}', b'[{"start": 1}]', b"[1, 2]", b"\xff\xfe"],
)
def test_decode_segments_rejects_malformed_payloads(raw: bytes) -> None:
    with pytest.raises(ValueError):
        decode_segments(raw)
