"""Retrieval orchestration components."""

from .modes import Hybrid, Keyword, SearchMode, SearchPlan, Semantic, WithContext, mode_from_payload, plan_search
from .orchestrator import ErrorState, RetrievalOrchestrator
from .types import IndexStore, RetrievedResult
from .vector_index import VectorIndex

__all__ = [
    "Hybrid",
    "Keyword",
    "SearchMode",
    "SearchPlan",
    "Semantic",
    "WithContext",
    "mode_from_payload",
    "plan_search",
    "ErrorState",
    "RetrievalOrchestrator",
    "IndexStore",
    "RetrievedResult",
    "VectorIndex",
]
