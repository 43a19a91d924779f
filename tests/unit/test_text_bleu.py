from __future__ import annotations

import pytest

from tsaudit.core.text import (
    bleu,
    bleu_from_precisions,
    brevity_penalty,
    n_gram,
    n_gram_precision,
    n_gram_precisions,
    tokenize,
)
from tsaudit.schemas.score import Precision

REFERENCE = ["this", "is", "a", "apple"]


def test_tokenize_lowercases_and_splits_on_spaces() -> None:
    assert tokenize("this is a pen") == ["this", "is", "a", "pen"]
    assert tokenize("This IS") == ["this", "is"]


def test_tokenize_keeps_empty_tokens_from_repeated_spaces() -> None:
    assert tokenize(" a  b") == ["", "a", "", "b"]


def test_n_gram_builds_contiguous_windows() -> None:
    tokens = ["this", "is", "a", "pen"]
    assert n_gram(tokens, 2) == [("this", "is"), ("is", "a"), ("a", "pen")]
    assert n_gram(tokens, 3) == [("this", "is", "a"), ("is", "a", "pen")]


def test_n_gram_is_empty_when_order_exceeds_length() -> None:
    assert n_gram(["a", "b"], 3) == []


def test_n_gram_precision_counts_matching_bigrams() -> None:
    assert n_gram_precision(["this", "is", "a", "pen"], REFERENCE, 2) == 2


def test_n_gram_precision_consumes_each_reference_ngram_once() -> None:
    assert n_gram_precision(["a", "a", "a", "a"], REFERENCE, 1) == 1
    assert n_gram_precision(["a", "a"], ["a", "b", "a"], 1) == 2


def test_n_gram_precisions_reports_totals_per_order() -> None:
    precisions = n_gram_precisions(4, ["a"], REFERENCE)
    assert precisions[1] == Precision(match=1, total=1)
    assert precisions[2] == Precision(match=0, total=0)
    assert precisions[4] == Precision(match=0, total=-2)


def test_brevity_penalty() -> None:
    assert brevity_penalty(5, 4) == 1.0
    assert brevity_penalty(4, 4) == pytest.approx(1.0)
    assert brevity_penalty(1, 4) == pytest.approx(0.0498, abs=1e-4)
    assert brevity_penalty(0, 4) == 0.0


def test_bleu_from_precisions_skips_zero_and_empty_orders() -> None:
    precisions = {
        1: Precision(match=3, total=4),
        2: Precision(match=0, total=3),
        3: Precision(match=0, total=0),
    }
    assert bleu_from_precisions(precisions, 1.0, 2) == pytest.approx(0.75 ** 0.5)


@pytest.mark.parametrize(
    ("hypothesis", "expected"),
    [
        (["this", "is", "a", "pen"], 0.7071),
        (["a", "a", "a", "a"], 0.7071),
        (["a"], 0.0498),
    ],
)
def test_bleu_known_values(hypothesis: list[str], expected: float) -> None:
    assert bleu(hypothesis, REFERENCE, 4) == pytest.approx(expected, abs=1e-4)


def test_bleu_nasa_example() -> None:
    hypothesis = "a NASA rover is fighting a massive storm on Mars .".split(" ")
    reference = "the NASA Opportunity rover is battling a massive dust storm on Mars .".split(" ")
    assert bleu(hypothesis, reference, 4) == pytest.approx(0.27, abs=5e-3)


def test_bleu_of_identical_sequences_is_one() -> None:
    tokens = tokenize("the quick brown fox jumps")
    assert bleu(tokens, tokens) == pytest.approx(1.0)


def test_bleu_without_any_overlap_reduces_to_brevity_penalty() -> None:
    hypothesis = ["x", "y"]
    assert bleu(hypothesis, REFERENCE) == pytest.approx(brevity_penalty(2, 4))


def test_bleu_of_empty_hypothesis_is_zero() -> None:
    assert bleu([], REFERENCE) == 0.0
