"""Content pipeline: extraction, chunking and embedding for one document."""

from __future__ import annotations

import time
from typing import Callable, Sequence

from recall_core.core.logging import get_logger, log_context
from recall_core.core.metrics import INGEST_DURATION
from recall_core.embedding.engine import EmbeddingEngine
from recall_core.ingest.chunker import chunk_document
from recall_core.ingest.loaders import LoaderRegistry
from recall_core.ingest.types import (
    ChunkPayload,
    ContentSource,
    ExtractedDocument,
    ExtractedPage,
    FileContent,
    IngestConfig,
    IngestOutcome,
    TextContent,
)
from recall_core.models.document import DocumentKind, DocumentStatus, DocumentSummary

logger = get_logger(__name__)

StatusHook = Callable[[DocumentSummary], None]
Writer = Callable[[DocumentSummary, ExtractedDocument, Sequence[ChunkPayload], Sequence[list[float]]], None]


class ContentPipeline:
    """Drive one document from ``queued`` to ``completed`` (or ``failed``).

    Every status change is reported through ``on_status`` so the caller can
    persist it; the final rows are handed to ``write`` while the document is
    in the ``writing`` state. ``write`` is the only step that changes the
    chunk and page counts or the content version.
    """

    def __init__(self, engine: EmbeddingEngine, loaders: LoaderRegistry | None = None) -> None:
        self.engine = engine
        self.loaders = loaders or LoaderRegistry()

    def run(
        self,
        content: ContentSource,
        source_id: str,
        config: IngestConfig,
        summary: DocumentSummary,
        *,
        write: Writer,
        on_status: StatusHook,
    ) -> IngestOutcome:
        started = time.perf_counter()
        kind_label = "file" if isinstance(content, FileContent) else "text"
        try:
            self._step(summary, DocumentStatus.QUEUED, on_status)
            self._step(summary, DocumentStatus.EXTRACTING, on_status)
            document = self.extract(content)
            self._step(summary, DocumentStatus.CHUNKING, on_status)
            chunks = chunk_document(source_id, document, config)
            vectors = self.embed_chunks(chunks, config)
            self._step(summary, DocumentStatus.WRITING, on_status)
            summary.title = document.title
            summary.kind = document.kind
            summary.file_path = document.file_path
            summary.file_size = document.size_bytes
            summary.metadata.update(document.metadata)
            write(summary, document, chunks, vectors)
            self._step(summary, DocumentStatus.COMPLETED, on_status)
        except Exception as exc:
            if not summary.state.is_terminal:
                summary.mark_failed(str(exc) or type(exc).__name__)
                on_status(summary)
            logger.exception("Ingest failed for %s", source_id, extra=log_context(source_id=source_id))
            raise
        finally:
            INGEST_DURATION.labels(kind=kind_label).observe(time.perf_counter() - started)
        logger.info(
            "Ingested %s",
            source_id,
            extra=log_context(source_id=source_id, pages=len(document.pages), chunks=len(chunks)),
        )
        return IngestOutcome(units=len(document.pages), chunks=len(chunks))

    def extract(self, content: ContentSource) -> ExtractedDocument:
        if isinstance(content, TextContent):
            data = content.text.encode("utf-8")
            return ExtractedDocument(
                title=content.name,
                kind=DocumentKind.TEXT,
                pages=[ExtractedPage(number=None, text=content.text)],
                size_bytes=len(data),
            )
        if isinstance(content, FileContent):
            document = self.loaders.load(content.path)
            if content.name:
                document.title = content.name
            return document
        raise TypeError(f"Unsupported content source {type(content).__name__}")

    def embed_chunks(self, chunks: Sequence[ChunkPayload], config: IngestConfig) -> list[list[float]]:
        texts = [_embedding_text(chunk, config) for chunk in chunks]
        return self.engine.embed_batch(texts)

    @staticmethod
    def _step(summary: DocumentSummary, status: DocumentStatus, on_status: StatusHook) -> None:
        summary.transition(status)
        on_status(summary)


def _embedding_text(chunk: ChunkPayload, config: IngestConfig) -> str:
    if config.prefix_titles and chunk.section_title:
        return f"{chunk.section_title}\n{chunk.text}"
    return chunk.text


__all__ = ["ContentPipeline"]
