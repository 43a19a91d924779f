from __future__ import annotations

import math
from collections import Counter
from collections.abc import Mapping, Sequence

from tsaudit.schemas.score import Precision

DEFAULT_BLEU_ORDER = 4


def tokenize(text: str) -> list[str]:
    """Lower-case and split on single spaces; empty tokens are kept."""
    return text.lower().split(" ")


def n_gram(tokens: Sequence[str], n: int) -> list[tuple[str, ...]]:
    return [tuple(tokens[i : i + n]) for i in range(len(tokens) - (n - 1))]


def n_gram_precision(
    hypothesis: Sequence[str],
    reference: Sequence[str],
    n: int,
) -> int:
    """Count hypothesis n-grams found in the reference.

    Each reference n-gram can be matched at most once, so repeating a
    reference n-gram in the hypothesis is not rewarded beyond its
    reference count.
    """
    remaining = Counter(n_gram(reference, n))
    matched = 0
    for gram in n_gram(hypothesis, n):
        if remaining[gram] > 0:
            remaining[gram] -= 1
            matched += 1
    return matched


def n_gram_precisions(
    max_n: int,
    hypothesis: Sequence[str],
    reference: Sequence[str],
) -> dict[int, Precision]:
    return {
        order: Precision(
            match=n_gram_precision(hypothesis, reference, order),
            total=len(hypothesis) - (order - 1),
        )
        for order in range(1, max_n + 1)
    }


def brevity_penalty(hyp_length: int, ref_length: int) -> float:
    if hyp_length > ref_length:
        return 1.0
    if hyp_length <= 0:
        return 0.0
    return math.exp(1 - ref_length / hyp_length)


def bleu_from_precisions(
    precisions: Mapping[int, Precision],
    bp: float,
    n: int,
) -> float:
    product = 1.0
    for precision in precisions.values():
        if precision.total <= 0:
            continue
        p = precision.match / precision.total
        # Zero-precision orders are skipped instead of zeroing the product.
        if p > 0:
            product *= p
    return bp * product ** (1 / n)


def bleu(
    hypothesis: Sequence[str],
    reference: Sequence[str],
    n: int = DEFAULT_BLEU_ORDER,
) -> float:
    precisions = n_gram_precisions(n, hypothesis, reference)
    bp = brevity_penalty(len(hypothesis), len(reference))
    return bleu_from_precisions(precisions, bp, n)
