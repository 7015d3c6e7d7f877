"""Administrative routes for recall-core."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from recall_core.api.dependencies import get_app_settings, get_orchestrator, get_store, peek_orchestrator
from recall_core.core.metrics import metrics_response
from recall_core.models.document import DocumentSummary
from recall_core.models.dto import DeepHealthResponse, DocumentResponse, HealthResponse
from recall_core.retrieval.healthcheck import run_health_check
from recall_core.retrieval.orchestrator import ErrorState, RetrievalOrchestrator
from recall_core.retrieval.store import SQLiteIndexStore

router = APIRouter()


@router.get("/documents", response_model=list[DocumentResponse], summary="List indexed documents")
async def list_documents(
    orchestrator: RetrievalOrchestrator = Depends(get_orchestrator),
) -> list[DocumentResponse]:
    return [_to_response(summary) for summary in await orchestrator.documents()]


@router.get("/documents/{source_id:path}", response_model=DocumentResponse, summary="Show one document")
async def get_document(
    source_id: str,
    orchestrator: RetrievalOrchestrator = Depends(get_orchestrator),
) -> DocumentResponse:
    summary = await orchestrator.document(source_id)
    if summary is None:
        raise HTTPException(status_code=404, detail="Document not found")
    return _to_response(summary)


@router.get("/health", response_model=HealthResponse, summary="Liveness and last failure kind")
async def health() -> HealthResponse:
    orchestrator = peek_orchestrator()
    if orchestrator is None:
        return HealthResponse(ok=True, ready=False, error_state=ErrorState.NONE.value)
    return HealthResponse(ok=True, ready=True, error_state=orchestrator.error_state.value)


@router.get("/health/deep", response_model=DeepHealthResponse, summary="End-to-end self-check")
async def deep_health(
    orchestrator: RetrievalOrchestrator = Depends(get_orchestrator),
    store: SQLiteIndexStore = Depends(get_store),
) -> DeepHealthResponse:
    report = await run_health_check(orchestrator, store, get_app_settings().store_dim)
    return DeepHealthResponse(**report.to_dict())


@router.get("/metrics", summary="Prometheus metrics")
async def get_metrics():
    return metrics_response()


def _to_response(summary: DocumentSummary) -> DocumentResponse:
    return DocumentResponse(**summary.to_dict())


__all__ = ["router"]
