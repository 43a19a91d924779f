from __future__ import annotations

import math
import re
from typing import Callable

from tsaudit.core.errors import ConfigurationError
from tsaudit.core.text import DEFAULT_BLEU_ORDER, bleu, tokenize
from tsaudit.schemas.segment import Segment, Timestamp

TimestampLike = Timestamp | Segment
TimestampScorer = Callable[[TimestampLike, TimestampLike], float]
TranscriptScoreWeights = tuple[float, float]
TimestampScoreWeights = tuple[float, float]

DEFAULT_TRANSCRIPT_WEIGHTS: TranscriptScoreWeights = (0.1, 0.9)
DEFAULT_TIMESTAMP_WEIGHTS: TimestampScoreWeights = (0.3, 0.7)

# Word characters are ASCII only; whitespace includes Unicode spaces such as U+00A0.
_PUNCTUATION_PATTERN = re.compile(r"([A-Za-z0-9_])([^\sA-Za-z0-9_])\s*")


def similarity_score(a: float, b: float) -> float:
    """Gaussian kernel on the difference: 1 when equal, decays towards 0."""
    diff = a - b
    return math.exp(-(diff * diff))


def get_duration(timestamp: TimestampLike) -> float:
    return timestamp.end - timestamp.start


def build_timestamp_score(weights: TimestampScoreWeights) -> TimestampScorer:
    edge_weight, duration_weight = weights

    def compute_timestamp_score(
        candidate: TimestampLike, reference: TimestampLike
    ) -> float:
        start = similarity_score(candidate.start, reference.start)
        end = similarity_score(candidate.end, reference.end)
        duration = similarity_score(get_duration(candidate), get_duration(reference))
        return ((start + end) / 2) * edge_weight + duration * duration_weight

    return compute_timestamp_score


def break_punctuation(text: str) -> str:
    """Split punctuation glued to a word into its own token."""
    return _PUNCTUATION_PATTERN.sub(r"\1 \2 ", text).rstrip()


def to_text_tokens(segment: Segment) -> list[str]:
    return tokenize(break_punctuation(segment.text))


def compute_text_bleu(candidate: Segment, reference: Segment) -> float:
    return bleu(
        to_text_tokens(candidate), to_text_tokens(reference), DEFAULT_BLEU_ORDER
    )


def validate_transcript_weights(weights: TranscriptScoreWeights) -> TranscriptScoreWeights:
    if len(weights) != 2:
        raise ConfigurationError(
            f"Transcript weights must be a (timestamp, text) pair, got {weights!r}"
        )
    timestamp_weight, text_weight = (float(value) for value in weights)
    if not (0.0 <= timestamp_weight <= 1.0 and 0.0 <= text_weight <= 1.0):
        raise ConfigurationError(
            f"Transcript weights must be within [0, 1], got {weights!r}"
        )
    # Sum is compared after half-up rounding.
    if math.floor(timestamp_weight + text_weight + 0.5) != 1:
        raise ConfigurationError(f"Total weights must equal 1, got {weights!r}")
    return timestamp_weight, text_weight


def transcript_bleu(
    candidate: Segment,
    reference: Segment,
    weights: TranscriptScoreWeights = DEFAULT_TRANSCRIPT_WEIGHTS,
    timestamp_scorer: TimestampScorer | None = None,
) -> float:
    """Score a candidate segment against a reference segment.

    Returns a value in [0, 1] combining timing similarity and BLEU-4 of
    the punctuation-split, lower-cased text.
    """
    timestamp_weight, text_weight = validate_transcript_weights(weights)
    scorer = timestamp_scorer or build_timestamp_score(DEFAULT_TIMESTAMP_WEIGHTS)
    ts_score = scorer(reference, candidate)
    text_score = compute_text_bleu(candidate, reference)
    return ts_score * timestamp_weight + text_score * text_weight
