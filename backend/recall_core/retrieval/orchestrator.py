"""Retrieval orchestrator: content-addressed ingest and mode-routed search."""

from __future__ import annotations

import asyncio
from enum import Enum
from pathlib import Path
from typing import Awaitable, Sequence, TypeVar

from recall_core.core.errors import IngestError, SearchError
from recall_core.core.logging import get_logger, log_context
from recall_core.core.metrics import SEARCH_COUNT
from recall_core.ingest.formatter import CalendarEvent, EmailMessage, render_emails, render_events
from recall_core.ingest.types import ContentSource, FileContent, IngestConfig, IngestOutcome, SourceRecord, TextContent
from recall_core.models.document import DocumentSummary
from recall_core.retrieval.modes import FUSED, SearchMode, Semantic, plan_search
from recall_core.retrieval.types import IndexStore, RetrievedResult
from recall_core.utils.hashing import file_source_id, text_source_id

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_MAX_TOP_K = 50
DEFAULT_EMAIL_NAME = "Emails"
DEFAULT_SCHEDULE_NAME = "Schedule"


class ErrorState(str, Enum):
    NONE = "none"
    INGEST_ERROR = "ingestError"
    SEARCH_ERROR = "searchError"


class RetrievalOrchestrator:
    """Front door for ingest and search over an :class:`IndexStore`.

    ``error_state`` records the most recent failure kind. It is advisory: it is
    never cleared by a later success and is not guarded against concurrent
    writers.
    """

    def __init__(
        self,
        store: IndexStore,
        ingest_config: IngestConfig | None = None,
        max_top_k: int = DEFAULT_MAX_TOP_K,
    ) -> None:
        if max_top_k < 1:
            raise ValueError("max_top_k must be at least 1")
        self.store = store
        self.ingest_config = ingest_config or IngestConfig()
        self.max_top_k = max_top_k
        self.error_state = ErrorState.NONE

    async def import_file(self, path: Path) -> IngestOutcome:
        """Index a file under the digest of its bytes. Returns ``(pages, chunks)``."""
        path = Path(path)

        async def _ingest() -> IngestOutcome:
            source_id = await asyncio.to_thread(file_source_id, path)
            return await self._ingest(FileContent(path), source_id)

        return await self._guard_ingest(_ingest(), source=str(path))

    async def import_free_text(self, text: str, name: str | None = None) -> IngestOutcome:
        """Index free text. Returns ``(utf8_bytes, chunks)``."""
        record = SourceRecord(text_source_id(text), text)
        digest = record.source_id.split(":", 1)[1]
        content = TextContent(record.canonical_text, name or f"text-{digest[:8]}")

        async def _ingest() -> IngestOutcome:
            outcome = await self._ingest(content, record.source_id)
            return IngestOutcome(len(text.encode("utf-8")), outcome.chunks)

        return await self._guard_ingest(_ingest(), source=record.source_id)

    async def import_email_batch(
        self,
        messages: Sequence[EmailMessage],
        source_id: str,
        name: str | None = None,
    ) -> IngestOutcome:
        """Index an email batch as one document. Returns ``(messages, chunks)``."""
        if not messages:
            return IngestOutcome(0, 0)
        content = TextContent(render_emails(messages), name or DEFAULT_EMAIL_NAME)
        return await self._guard_ingest(self._ingest_batch(content, source_id, len(messages)), source=source_id)

    async def import_schedule_batch(
        self,
        events: Sequence[CalendarEvent],
        source_id: str,
        name: str | None = None,
    ) -> IngestOutcome:
        """Index calendar events as one document. Returns ``(events, chunks)``."""
        if not events:
            return IngestOutcome(0, 0)
        content = TextContent(render_events(events), name or DEFAULT_SCHEDULE_NAME)
        return await self._guard_ingest(self._ingest_batch(content, source_id, len(events)), source=source_id)

    async def search(
        self,
        query: str,
        source_filter: str | None = None,
        top_k: int = 8,
        mode: SearchMode = Semantic(),
    ) -> list[RetrievedResult]:
        query = query.strip()
        if not query:
            return []
        limit = min(max(int(top_k), 1), self.max_top_k)
        plan = plan_search(mode)
        try:
            if plan.primitive == FUSED:
                results = await self.store.search_fused(query, source_filter, limit, plan.expand, plan.bm25_weight)
            else:
                results = await self.store.search_contextual(query, source_filter, limit, plan.expand)
        except Exception as exc:
            self.error_state = ErrorState.SEARCH_ERROR
            SEARCH_COUNT.labels(mode=mode.name, outcome="error").inc()
            logger.exception("Search failed", extra=log_context(mode=mode.name, source=source_filter))
            raise SearchError(f"Search failed: {exc}") from exc
        SEARCH_COUNT.labels(mode=mode.name, outcome="ok").inc()
        return list(results)

    async def documents(self) -> list[DocumentSummary]:
        return await self.store.documents()

    async def document(self, source_id: str) -> DocumentSummary | None:
        return await self.store.document(source_id)

    async def _ingest(self, content: ContentSource, source_id: str) -> IngestOutcome:
        return await self.store.ingest(content, source_id, self.ingest_config)

    async def _ingest_batch(self, content: TextContent, source_id: str, units: int) -> IngestOutcome:
        outcome = await self._ingest(content, source_id)
        return IngestOutcome(units, outcome.chunks)

    async def _guard_ingest(self, operation: Awaitable[T], *, source: str) -> T:
        try:
            return await operation
        except Exception as exc:
            self.error_state = ErrorState.INGEST_ERROR
            logger.exception("Ingest failed", extra=log_context(source=source))
            raise IngestError(f"Ingest failed for {source}: {exc}") from exc


__all__ = ["ErrorState", "RetrievalOrchestrator", "DEFAULT_MAX_TOP_K"]
