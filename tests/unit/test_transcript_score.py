from __future__ import annotations

import math

import pytest

from tsaudit.core.errors import ConfigurationError
from tsaudit.core.transcript import (
    break_punctuation,
    build_timestamp_score,
    get_duration,
    similarity_score,
    to_text_tokens,
    transcript_bleu,
)
from tsaudit.schemas.segment import Segment, Timestamp

NASA_REFERENCE = "The NASA Opportunity rover is battling a massive dust storm on Mars."
NASA_CANDIDATE = "A NASA rover is fighting a massive storm on Mars."

PUNCTUATION_SAMPLES = [
    "",
    "Hello,world!",
    "Hello,world!How's it going?",
    "a!!",
    "end.   ",
    "  leading space, trailing.",
    "tabs,\tand\nnewlines;ok",
    "x.y.z",
    "3.14 is pi...",
    "(parens) [brackets] {braces}",
    "under_score-dash/slash",
    "a\x1c,b",
    "!!!",
    "word ,spaced",
]


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("Hello,world!", "Hello , world !"),
        ("Hello,world!How's it going?", "Hello , world ! How ' s it going ?"),
    ],
)
def test_break_punctuation_separates_marks(text: str, expected: str) -> None:
    assert break_punctuation(text) == expected


@pytest.mark.parametrize("text", PUNCTUATION_SAMPLES)
def test_break_punctuation_is_idempotent(text: str) -> None:
    once = break_punctuation(text)
    assert break_punctuation(once) == once


def test_break_punctuation_treats_no_break_space_as_whitespace() -> None:
    assert break_punctuation("hello\xa0world") == "hello\xa0world"
    assert break_punctuation("Hi,\xa0there") == "Hi , there"


def test_to_text_tokens_splits_punctuation_into_tokens() -> None:
    segment = Segment(start=0.0, end=1.0, text="Mars, again.")
    assert to_text_tokens(segment) == ["mars", ",", "again", "."]


@pytest.mark.parametrize("value", [0.0, 1.5, 12.345, 1e6, -3.0])
def test_similarity_score_is_one_for_identical_values(value: float) -> None:
    assert similarity_score(value, value) == 1.0


def test_similarity_score_decreases_with_distance() -> None:
    scores = [similarity_score(5.0, 5.0 + delta) for delta in (0.0, 0.1, 0.5, 1.0, 2.0, 4.0)]
    assert all(0.0 <= score <= 1.0 for score in scores)
    assert scores == sorted(scores, reverse=True)
    assert len(set(scores)) == len(scores)
    assert similarity_score(0.0, 1e200) == 0.0


def test_similarity_score_is_symmetric_gaussian() -> None:
    assert similarity_score(1.0, 3.0) == pytest.approx(math.exp(-4))
    assert similarity_score(3.0, 1.0) == similarity_score(1.0, 3.0)


def test_get_duration() -> None:
    assert get_duration(Timestamp(start=2.0, end=14.5)) == pytest.approx(12.5)


def test_timestamp_score_is_one_for_identical_timestamps() -> None:
    scorer = build_timestamp_score((0.3, 0.7))
    timestamp = Timestamp(start=3.0, end=9.0)
    assert scorer(timestamp, timestamp) == pytest.approx(1.0)


def test_timestamp_score_drops_as_duration_diverges() -> None:
    scorer = build_timestamp_score((0.3, 0.7))
    reference = Timestamp(start=0.0, end=10.0)
    near = scorer(Timestamp(start=0.0, end=10.5), reference)
    far = scorer(Timestamp(start=0.0, end=11.5), reference)
    assert 0.0 <= far < near <= 1.0


def test_transcript_bleu_pure_text_weights() -> None:
    reference = Segment(start=0.0, end=12.345, text=NASA_REFERENCE)
    candidate = Segment(start=0.0, end=12.345, text=NASA_CANDIDATE)
    assert transcript_bleu(reference, reference, (0, 1)) == 1.0
    assert transcript_bleu(candidate, reference, (0, 1)) == pytest.approx(0.27, abs=5e-3)


def test_transcript_bleu_pure_timestamp_weights() -> None:
    reference = Segment(start=0.0, end=12.345, text=NASA_REFERENCE)
    same_time = Segment(start=0.0, end=12.345, text=NASA_CANDIDATE)
    shifted = Segment(start=2.0, end=14.345, text=NASA_CANDIDATE)
    assert transcript_bleu(reference, same_time, (1, 0)) == 1.0
    assert transcript_bleu(reference, shifted, (1, 0)) == pytest.approx(0.705, abs=5e-3)


def test_transcript_bleu_identical_segments_score_one() -> None:
    segment = Segment(start=4.0, end=9.5, text="Identical, really identical text.")
    for weights in [(0.1, 0.9), (0.2, 0.8), (0.5, 0.5), (0.0, 1.0), (1.0, 0.0)]:
        assert transcript_bleu(segment, segment, weights) == pytest.approx(1.0)


def test_transcript_bleu_lower_timestamp_weight_lowers_score_for_offset_timing() -> None:
    reference = Segment(start=0.0, end=12.345, text=NASA_REFERENCE)
    candidate = Segment(start=1.0, end=13.345, text=NASA_CANDIDATE)
    assert transcript_bleu(candidate, reference, (0.1, 0.9)) < transcript_bleu(
        candidate, reference, (0.2, 0.8)
    )


def test_transcript_bleu_closer_timestamps_score_higher() -> None:
    reference = Segment(start=0.0, end=12.345, text=NASA_REFERENCE)
    near = Segment(start=0.1, end=12.445, text=NASA_CANDIDATE)
    far = Segment(start=1.0, end=13.345, text=NASA_CANDIDATE)
    assert transcript_bleu(far, reference) < transcript_bleu(near, reference)


def test_transcript_bleu_default_weights_known_value() -> None:
    reference = Segment(
        start=0.0,
        end=6.0,
        text=(
            "Let me ask you about you tweeting with no capitalization. "
            "Is the shift key broken on your keyboard?"
        ),
    )
    candidate = Segment(
        start=0.0,
        end=7.28000020980835,
        text=" Let me ask you about you tweeting with no capitalization, does the shift key broken",
    )
    assert transcript_bleu(candidate, reference) == pytest.approx(0.556, abs=1e-3)


@pytest.mark.parametrize("weights", [(0.9, 0.9), (0.0, 0.0), (1.2, -0.2)])
def test_transcript_bleu_rejects_invalid_weights(weights: tuple[float, float]) -> None:
    segment = Segment(start=0.0, end=1.0, text="hello")
    with pytest.raises(ConfigurationError):
        transcript_bleu(segment, segment, weights)


def test_segment_rejects_end_before_start() -> None:
    with pytest.raises(ValueError, match="end must be >= start"):
        Segment(start=2.0, end=1.0, text="backwards")
