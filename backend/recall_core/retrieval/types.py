"""Retrieval results and the index store contract."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

from recall_core.ingest.types import ContentSource, IngestConfig, IngestOutcome
from recall_core.models.document import DocumentSummary


@dataclass(frozen=True, slots=True)
class RetrievedResult:
    source_id: str
    excerpt: str
    text: str
    bm25_score: float
    fused_score: float
    start_page: int | None = None
    cosine_score: float | None = None

    def to_tool_payload(self) -> dict[str, Any]:
        return {
            "sourceId": self.source_id,
            "startPage": self.start_page,
            "excerpt": self.excerpt,
            "text": self.text,
            "bm25": self.bm25_score,
            "cosine": self.cosine_score,
            "score": self.fused_score,
        }


class IndexStore(Protocol):
    """Storage, chunking and ranking collaborator behind the orchestrator."""

    async def ingest(self, content: ContentSource, source_id: str, config: IngestConfig) -> IngestOutcome: ...

    async def search_fused(
        self,
        query: str,
        source_filter: str | None,
        limit: int,
        expand: int,
        bm25_weight: float,
    ) -> list[RetrievedResult]: ...

    async def search_contextual(
        self,
        query: str,
        source_filter: str | None,
        limit: int,
        expand: int,
    ) -> list[RetrievedResult]: ...

    async def documents(self) -> list[DocumentSummary]: ...

    async def document(self, source_id: str) -> DocumentSummary | None: ...


__all__ = ["RetrievedResult", "IndexStore"]
