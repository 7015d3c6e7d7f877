"""Query and tool API routes."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from recall_core.api.dependencies import get_orchestrator, get_search_tool
from recall_core.models.dto import SearchHit, SearchRequest, SearchResponse
from recall_core.retrieval.orchestrator import RetrievalOrchestrator
from recall_core.tools.search_rag import SearchRagArguments, SearchRagTool

router = APIRouter()


@router.post("/search", response_model=SearchResponse, summary="Execute a retrieval query")
async def run_search(
    request: SearchRequest,
    orchestrator: RetrievalOrchestrator = Depends(get_orchestrator),
) -> SearchResponse:
    results = await orchestrator.search(
        request.query,
        source_filter=request.source_id,
        top_k=request.k,
        mode=request.mode.to_mode(),
    )
    return SearchResponse(results=[SearchHit.from_result(result) for result in results])


@router.get("/tools", summary="List tool definitions")
async def list_tools() -> list[dict[str, Any]]:
    return [SearchRagTool.definition()]


@router.post("/tools/search_rag", summary="Invoke the search_rag tool")
async def call_search_rag(
    arguments: SearchRagArguments,
    tool: SearchRagTool = Depends(get_search_tool),
) -> list[dict[str, Any]]:
    return await tool.call(arguments)


__all__ = ["router"]
