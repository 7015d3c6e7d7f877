"""Pydantic DTOs exposed via API."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from recall_core.ingest.formatter import CalendarEvent, EmailMessage
from recall_core.retrieval.modes import SearchMode, mode_from_payload
from recall_core.retrieval.types import RetrievedResult


class IngestTextRequest(BaseModel):
    text: str
    name: str | None = Field(default=None, description="Display name; derived from the content hash when omitted")


class IngestFileRequest(BaseModel):
    path: str = Field(description="Filesystem path readable by the server")


class EmailPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    subject: str = ""
    sender: str = Field(default="", alias="from")
    to: list[str] = Field(default_factory=list)
    cc: list[str] = Field(default_factory=list)
    date: datetime
    body: str = ""
    message_id: str | None = None

    def to_message(self) -> EmailMessage:
        return EmailMessage(
            subject=self.subject,
            sender=self.sender,
            to=tuple(self.to),
            date=self.date,
            body=self.body,
            cc=tuple(self.cc),
            message_id=self.message_id,
        )


class EventPayload(BaseModel):
    title: str
    start: datetime
    end: datetime
    location: str | None = None
    notes: str | None = None
    uid: str | None = None

    def to_event(self) -> CalendarEvent:
        return CalendarEvent(
            title=self.title,
            start=self.start,
            end=self.end,
            location=self.location,
            notes=self.notes,
            uid=self.uid,
        )


class IngestEmailsRequest(BaseModel):
    source_id: str
    name: str | None = None
    messages: list[EmailPayload] = Field(default_factory=list)


class IngestScheduleRequest(BaseModel):
    source_id: str
    name: str | None = None
    events: list[EventPayload] = Field(default_factory=list)


class IngestResponse(BaseModel):
    units: int = Field(description="Bytes, pages, messages or events consumed")
    chunks: int


class SearchModePayload(BaseModel):
    type: Literal["semantic", "keyword", "withContext", "hybrid"] = "semantic"
    expand: int = 1
    bm25_weight: float = Field(default=0.5, ge=0.0, le=1.0, allow_inf_nan=False)

    def to_mode(self) -> SearchMode:
        return mode_from_payload(self.type, expand=self.expand, bm25_weight=self.bm25_weight)


class SearchRequest(BaseModel):
    query: str
    k: int = Field(default=8, description="Requested result count; clamped server-side")
    source_id: str | None = None
    mode: SearchModePayload = Field(default_factory=SearchModePayload)


class SearchHit(BaseModel):
    source_id: str
    start_page: int | None
    excerpt: str
    text: str
    bm25: float
    cosine: float | None
    score: float

    @classmethod
    def from_result(cls, result: RetrievedResult) -> "SearchHit":
        return cls(
            source_id=result.source_id,
            start_page=result.start_page,
            excerpt=result.excerpt,
            text=result.text,
            bm25=result.bm25_score,
            cosine=result.cosine_score,
            score=result.fused_score,
        )


class SearchResponse(BaseModel):
    results: list[SearchHit]


class DocumentResponse(BaseModel):
    id: str
    title: str
    kind: str
    file_path: str | None
    file_size: int
    created_at: datetime
    updated_at: datetime
    chunk_count: int
    page_count: int | None
    status: str
    status_reason: str | None
    tags: list[str]
    course: str | None
    term: str | None
    checksum: str | None
    content_version: int
    embedding_version: int
    metadata: dict[str, Any]


class HealthResponse(BaseModel):
    ok: bool
    ready: bool
    error_state: str


class DeepHealthResponse(BaseModel):
    ok: bool
    steps: list[str]
    error: str | None = None


__all__ = [
    "IngestTextRequest",
    "IngestFileRequest",
    "EmailPayload",
    "EventPayload",
    "IngestEmailsRequest",
    "IngestScheduleRequest",
    "IngestResponse",
    "SearchModePayload",
    "SearchRequest",
    "SearchHit",
    "SearchResponse",
    "DocumentResponse",
    "HealthResponse",
    "DeepHealthResponse",
]
