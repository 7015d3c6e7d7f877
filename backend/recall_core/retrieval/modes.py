"""Search modes and their mapping onto the two store primitives."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Literal, Union

FUSED = "fused"
CONTEXTUAL = "contextual"

MODE_NAMES = ("semantic", "keyword", "withContext", "hybrid")


@dataclass(frozen=True, slots=True)
class Semantic:
    name = "semantic"


@dataclass(frozen=True, slots=True)
class Keyword:
    name = "keyword"


@dataclass(frozen=True, slots=True)
class WithContext:
    expand: int = 1
    name = "withContext"


@dataclass(frozen=True, slots=True)
class Hybrid:
    expand: int = 1
    bm25_weight: float = 0.5
    name = "hybrid"


SearchMode = Union[Semantic, Keyword, WithContext, Hybrid]


@dataclass(frozen=True, slots=True)
class SearchPlan:
    primitive: Literal["fused", "contextual"]
    expand: int
    bm25_weight: float = 0.0


def plan_search(mode: SearchMode) -> SearchPlan:
    """Map a mode onto one store primitive with sanitized parameters.

    ``semantic`` is fusion with no lexical weight; ``keyword`` is contextual
    retrieval without expansion.
    """
    if isinstance(mode, Semantic):
        return SearchPlan(FUSED, expand=1, bm25_weight=0.0)
    if isinstance(mode, Keyword):
        return SearchPlan(CONTEXTUAL, expand=0)
    if isinstance(mode, WithContext):
        return SearchPlan(CONTEXTUAL, expand=max(0, int(mode.expand)))
    if isinstance(mode, Hybrid):
        weight = float(mode.bm25_weight)
        weight = 0.0 if math.isnan(weight) else min(max(weight, 0.0), 1.0)
        return SearchPlan(FUSED, expand=max(0, int(mode.expand)), bm25_weight=weight)
    raise TypeError(f"Unsupported search mode {mode!r}")


def mode_from_payload(kind: str, expand: int = 1, bm25_weight: float = 0.5) -> SearchMode:
    """Build a mode from its wire name (``semantic``, ``keyword``, ``withContext``, ``hybrid``)."""
    if kind == "semantic":
        return Semantic()
    if kind == "keyword":
        return Keyword()
    if kind == "withContext":
        return WithContext(expand=expand)
    if kind == "hybrid":
        return Hybrid(expand=expand, bm25_weight=bm25_weight)
    raise ValueError(f"Unsupported search mode: {kind}")


__all__ = [
    "Semantic",
    "Keyword",
    "WithContext",
    "Hybrid",
    "SearchMode",
    "SearchPlan",
    "plan_search",
    "mode_from_payload",
    "MODE_NAMES",
    "FUSED",
    "CONTEXTUAL",
]
