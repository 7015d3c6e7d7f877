"""``search_rag`` tool surface for LLM callers."""

from __future__ import annotations

from typing import Any, Literal, Mapping

from pydantic import BaseModel, Field

from recall_core.retrieval.modes import SearchMode, mode_from_payload
from recall_core.retrieval.orchestrator import RetrievalOrchestrator

ModeName = Literal["semantic", "keyword", "withContext", "hybrid"]


class SearchRagArguments(BaseModel):
    query: str = Field(description="Natural-language search query.")
    source: str | None = Field(default=None, description="Restrict results to one source id.")
    top_k: int = Field(default=5, ge=1, le=25, description="Number of results to return.")
    mode: ModeName = Field(default="hybrid", description="Retrieval strategy.")
    expand: int = Field(default=1, ge=0, le=1000, description="Characters of surrounding context to include.")
    bm25_weight: float = Field(default=0.5, ge=0.0, le=1.0, description="Lexical share of the fused score.")

    def to_mode(self) -> SearchMode:
        return mode_from_payload(self.mode, expand=self.expand, bm25_weight=self.bm25_weight)


class SearchRagTool:
    """Search indexed notes, emails, schedules and files."""

    name = "search_rag"
    description = (
        "Search the user's indexed notes, emails, calendar events and documents. "
        "Returns ranked passages with their source id, page and scores."
    )

    def __init__(self, orchestrator: RetrievalOrchestrator) -> None:
        self.orchestrator = orchestrator

    @classmethod
    def definition(cls) -> dict[str, Any]:
        return {
            "name": cls.name,
            "description": cls.description,
            "parameters": SearchRagArguments.model_json_schema(),
        }

    async def call(self, arguments: SearchRagArguments | Mapping[str, Any]) -> list[dict[str, Any]]:
        if not isinstance(arguments, SearchRagArguments):
            arguments = SearchRagArguments.model_validate(dict(arguments))
        results = await self.orchestrator.search(
            arguments.query,
            source_filter=arguments.source,
            top_k=arguments.top_k,
            mode=arguments.to_mode(),
        )
        return [result.to_tool_payload() for result in results]


__all__ = ["SearchRagArguments", "SearchRagTool"]
