"""Document lifecycle state machine and tracked document summaries."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Mapping

from recall_core.core.errors import InvalidTransitionError
from recall_core.utils.time import utc_now


class DocumentStatus(str, Enum):
    IDLE = "idle"
    QUEUED = "queued"
    EXTRACTING = "extracting"
    OCR = "ocr"
    CHUNKING = "chunking"
    WRITING = "writing"
    COMPLETED = "completed"
    FAILED = "failed"


class DocumentKind(str, Enum):
    PDF = "pdf"
    TEXT = "text"
    MARKDOWN = "markdown"
    HTML = "html"


TERMINAL_STATUSES = frozenset({DocumentStatus.COMPLETED, DocumentStatus.FAILED})

# failed is reachable from every non-terminal state and is handled separately
_FORWARD_EDGES: Mapping[DocumentStatus, frozenset[DocumentStatus]] = {
    DocumentStatus.IDLE: frozenset({DocumentStatus.QUEUED}),
    DocumentStatus.QUEUED: frozenset({DocumentStatus.EXTRACTING}),
    DocumentStatus.EXTRACTING: frozenset({DocumentStatus.OCR, DocumentStatus.CHUNKING}),
    DocumentStatus.OCR: frozenset({DocumentStatus.CHUNKING}),
    DocumentStatus.CHUNKING: frozenset({DocumentStatus.WRITING}),
    DocumentStatus.WRITING: frozenset({DocumentStatus.COMPLETED}),
}


@dataclass(frozen=True, slots=True)
class DocumentState:
    """Current lifecycle position; ``reason`` is set only for ``failed``."""

    status: DocumentStatus = DocumentStatus.IDLE
    reason: str | None = None

    @classmethod
    def initial(cls) -> "DocumentState":
        return cls(DocumentStatus.IDLE)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def can_advance(self, target: DocumentStatus) -> bool:
        if self.is_terminal:
            return False
        if target is DocumentStatus.FAILED:
            return True
        return target in _FORWARD_EDGES.get(self.status, frozenset())

    def advance(self, target: DocumentStatus) -> "DocumentState":
        if target is DocumentStatus.FAILED:
            raise InvalidTransitionError("use fail(reason) to enter the failed state")
        if not self.can_advance(target):
            raise InvalidTransitionError(f"{self.status.value} -> {target.value} is not a lifecycle edge")
        return DocumentState(target)

    def fail(self, reason: str) -> "DocumentState":
        if self.is_terminal:
            raise InvalidTransitionError(f"{self.status.value} is terminal")
        return DocumentState(DocumentStatus.FAILED, reason)


@dataclass(slots=True)
class DocumentSummary:
    id: str
    title: str
    kind: DocumentKind
    file_path: Path | None = None
    file_size: int = 0
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)
    chunk_count: int = 0
    page_count: int | None = None
    state: DocumentState = field(default_factory=DocumentState.initial)
    tags: list[str] = field(default_factory=list)
    course: str | None = None
    term: str | None = None
    checksum: str | None = None
    content_version: int = 1
    embedding_version: int = 1
    metadata: dict[str, str] = field(default_factory=dict)

    @property
    def status(self) -> DocumentStatus:
        return self.state.status

    def transition(self, target: DocumentStatus) -> None:
        self.state = self.state.advance(target)
        self.updated_at = utc_now()

    def mark_failed(self, reason: str) -> None:
        self.state = self.state.fail(reason)
        self.updated_at = utc_now()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "kind": self.kind.value,
            "file_path": str(self.file_path) if self.file_path else None,
            "file_size": self.file_size,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "chunk_count": self.chunk_count,
            "page_count": self.page_count,
            "status": self.state.status.value,
            "status_reason": self.state.reason,
            "tags": list(self.tags),
            "course": self.course,
            "term": self.term,
            "checksum": self.checksum,
            "content_version": self.content_version,
            "embedding_version": self.embedding_version,
            "metadata": dict(self.metadata),
        }


__all__ = [
    "DocumentStatus",
    "DocumentKind",
    "DocumentState",
    "DocumentSummary",
    "TERMINAL_STATUSES",
]
