"""Lexical scoring and score fusion for the reference index store."""

from __future__ import annotations

import re
from typing import Mapping, Sequence, Tuple

from rank_bm25 import BM25Okapi

_TOKEN_RE = re.compile(r"\w+")
IDF_FLOOR = 1e-6


def tokenize(text: str) -> list[str]:
    return _TOKEN_RE.findall(text.lower())


def bm25_scores(query: str, documents: Sequence[Tuple[str, str]]) -> dict[str, float]:
    """BM25 score per document id, floored at zero."""
    if not documents:
        return {}
    query_tokens = tokenize(query)
    if not query_tokens:
        return {doc_id: 0.0 for doc_id, _ in documents}
    corpus = [tokenize(text) or [""] for _, text in documents]
    model = BM25Okapi(corpus)
    # terms common to most chunks keep a small positive weight
    model.idf = {term: max(weight, IDF_FLOOR) for term, weight in model.idf.items()}
    scores = model.get_scores(query_tokens)
    return {doc_id: max(0.0, float(score)) for (doc_id, _), score in zip(documents, scores)}


def normalize_scores(scores: Mapping[str, float]) -> dict[str, float]:
    """Divide by the best score so values land in ``[0, 1]``."""
    best = max(scores.values(), default=0.0)
    if best <= 0.0:
        return {key: 0.0 for key in scores}
    return {key: value / best for key, value in scores.items()}


def fuse(bm25_norm: float, cosine: float, bm25_weight: float) -> float:
    return bm25_weight * bm25_norm + (1.0 - bm25_weight) * cosine


__all__ = ["tokenize", "bm25_scores", "normalize_scores", "fuse"]
