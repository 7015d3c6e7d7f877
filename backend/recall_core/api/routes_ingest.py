"""Ingest API routes."""

from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, Depends, HTTPException

from recall_core.api.dependencies import get_orchestrator
from recall_core.models.dto import (
    IngestEmailsRequest,
    IngestFileRequest,
    IngestResponse,
    IngestScheduleRequest,
    IngestTextRequest,
)
from recall_core.retrieval.orchestrator import RetrievalOrchestrator

router = APIRouter()


@router.post("/text", response_model=IngestResponse, summary="Index free text")
async def ingest_text(
    request: IngestTextRequest,
    orchestrator: RetrievalOrchestrator = Depends(get_orchestrator),
) -> IngestResponse:
    outcome = await orchestrator.import_free_text(request.text, name=request.name)
    return IngestResponse(units=outcome.units, chunks=outcome.chunks)


@router.post("/file", response_model=IngestResponse, summary="Index a file from disk")
async def ingest_file(
    request: IngestFileRequest,
    orchestrator: RetrievalOrchestrator = Depends(get_orchestrator),
) -> IngestResponse:
    path = Path(request.path).expanduser()
    if not path.is_file():
        raise HTTPException(status_code=404, detail=f"File not found: {request.path}")
    outcome = await orchestrator.import_file(path)
    return IngestResponse(units=outcome.units, chunks=outcome.chunks)


@router.post("/emails", response_model=IngestResponse, summary="Index a batch of email messages")
async def ingest_emails(
    request: IngestEmailsRequest,
    orchestrator: RetrievalOrchestrator = Depends(get_orchestrator),
) -> IngestResponse:
    messages = [message.to_message() for message in request.messages]
    outcome = await orchestrator.import_email_batch(messages, request.source_id, name=request.name)
    return IngestResponse(units=outcome.units, chunks=outcome.chunks)


@router.post("/schedule", response_model=IngestResponse, summary="Index a batch of calendar events")
async def ingest_schedule(
    request: IngestScheduleRequest,
    orchestrator: RetrievalOrchestrator = Depends(get_orchestrator),
) -> IngestResponse:
    events = [event.to_event() for event in request.events]
    outcome = await orchestrator.import_schedule_batch(events, request.source_id, name=request.name)
    return IngestResponse(units=outcome.units, chunks=outcome.chunks)


__all__ = ["router"]
