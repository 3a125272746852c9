"""TF-IDF rarity scores over a set of segments."""

from __future__ import annotations

import math
import re
from collections import Counter
from collections.abc import Sequence

STOPWORDS = frozenset(
    """
    a an and are as at be been being but by can could did do does for from had has have he her
    him his how if in into is it its just may me might my no not of on or our out she so some
    such than that the their them then there these they this those to too us very was we were
    what when where which while who whom why will with would you your
    """.split()
)

_NON_WORD_RE = re.compile(r"[^\w\s]")


def tokenize(text: str) -> list[str]:
    """Lowercase words of length >= 2 that are not stopwords."""
    cleaned = _NON_WORD_RE.sub(" ", text.lower())
    return [w for w in cleaned.split() if len(w) >= 2 and w not in STOPWORDS]


def _document_frequency(docs: Sequence[list[str]]) -> Counter[str]:
    df: Counter[str] = Counter()
    for terms in docs:
        df.update(set(terms))
    return df


def _term_scores(terms: list[str], df: Counter[str], n_docs: int) -> dict[str, float]:
    if not terms:
        return {}
    tf = Counter(terms)
    total = len(terms)
    return {term: (count / total) * math.log(n_docs / df[term]) for term, count in tf.items()}


def compute_tfidf_scores(texts: Sequence[str]) -> list[float]:
    """One rarity score in [0, 1] per text.

    A text's score is the mean TF-IDF of its distinct terms, halved and capped
    at 1.0. With a single text every idf is zero, so every score is 0.
    """
    docs = [tokenize(t) for t in texts]
    n_docs = len(docs)
    if n_docs == 0:
        return []
    df = _document_frequency(docs)

    scores: list[float] = []
    for terms in docs:
        term_scores = _term_scores(terms, df, n_docs)
        if not term_scores:
            scores.append(0.0)
            continue
        avg = sum(term_scores.values()) / len(term_scores)
        scores.append(min(avg / 2, 1.0))
    return scores


def top_terms(texts: Sequence[str], k: int = 5) -> list[str]:
    """Highest-scoring terms across all texts; ties broken alphabetically."""
    docs = [tokenize(t) for t in texts]
    n_docs = len(docs)
    if n_docs == 0 or k <= 0:
        return []
    df = _document_frequency(docs)
    best: dict[str, float] = {}
    for terms in docs:
        for term, score in _term_scores(terms, df, n_docs).items():
            if score > best.get(term, 0.0):
                best[term] = score
    ranked = sorted(best.items(), key=lambda kv: (-kv[1], kv[0]))
    return [term for term, _ in ranked[:k]]
