"""Reference index store: SQLite rows, in-memory vectors, BM25 + cosine fusion."""

from __future__ import annotations

import asyncio
import sqlite3
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from functools import partial
from pathlib import Path
from typing import Any, Callable, Sequence, TypeVar

import orjson

from recall_core.core.logging import get_logger
from recall_core.core.metrics import INDEX_SIZE
from recall_core.db.sqlite import SQLiteDatabase
from recall_core.embedding.engine import EmbeddingEngine
from recall_core.ingest.pipeline import ContentPipeline
from recall_core.ingest.types import (
    ChunkPayload,
    ContentSource,
    ExtractedDocument,
    FileContent,
    IngestConfig,
    IngestOutcome,
    TextContent,
)
from recall_core.models.document import DocumentKind, DocumentState, DocumentStatus, DocumentSummary
from recall_core.retrieval.hybrid import bm25_scores, fuse, normalize_scores
from recall_core.retrieval.types import RetrievedResult
from recall_core.retrieval.vector_index import VectorIndex, to_blob
from recall_core.utils.hashing import sha256_bytes
from recall_core.utils.text import excerpt, widen
from recall_core.utils.time import from_ms, now_ms

logger = get_logger(__name__)

T = TypeVar("T")

_UPSERT_DOCUMENT = """
INSERT INTO documents (
  id, title, kind, file_path, file_size, created_at, updated_at, chunk_count, page_count,
  status, status_reason, tags_json, course, term, checksum, content_version, embedding_version, meta_json
) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
ON CONFLICT(id) DO UPDATE SET
  title = excluded.title,
  kind = excluded.kind,
  file_path = excluded.file_path,
  file_size = excluded.file_size,
  updated_at = excluded.updated_at,
  chunk_count = excluded.chunk_count,
  page_count = excluded.page_count,
  status = excluded.status,
  status_reason = excluded.status_reason,
  tags_json = excluded.tags_json,
  course = excluded.course,
  term = excluded.term,
  checksum = excluded.checksum,
  content_version = excluded.content_version,
  embedding_version = excluded.embedding_version,
  meta_json = excluded.meta_json
"""

_CHUNK_COLUMNS = "id, source_id, ordinal, page, start_char, end_char, text"


class SQLiteIndexStore:
    """Index store whose blocking work all runs on one worker thread.

    The worker owns the SQLite connection and is the only caller of the
    embedding engine, which keeps model invocations serialized.
    """

    def __init__(
        self,
        db_path: Path | str,
        engine: EmbeddingEngine,
        *,
        excerpt_chars: int = 240,
        pipeline: ContentPipeline | None = None,
    ) -> None:
        self._db = SQLiteDatabase(db_path)
        self._engine = engine
        self._pipeline = pipeline or ContentPipeline(engine)
        self._index = VectorIndex()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="recall-index")
        self.excerpt_chars = excerpt_chars

    @classmethod
    async def open(cls, db_path: Path | str, engine: EmbeddingEngine, **kwargs: Any) -> "SQLiteIndexStore":
        store = cls(db_path, engine, **kwargs)
        await store._run(store._open_sync)
        return store

    async def close(self) -> None:
        await self._run(self._db.close)
        self._executor.shutdown(wait=True)

    # IndexStore protocol ----------------------------------------------

    async def ingest(self, content: ContentSource, source_id: str, config: IngestConfig) -> IngestOutcome:
        return await self._run(self._ingest_sync, content, source_id, config)

    async def search_fused(
        self,
        query: str,
        source_filter: str | None,
        limit: int,
        expand: int,
        bm25_weight: float,
    ) -> list[RetrievedResult]:
        return await self._run(self._search_fused_sync, query, source_filter, limit, expand, bm25_weight)

    async def search_contextual(
        self,
        query: str,
        source_filter: str | None,
        limit: int,
        expand: int,
    ) -> list[RetrievedResult]:
        return await self._run(self._search_contextual_sync, query, source_filter, limit, expand)

    async def documents(self) -> list[DocumentSummary]:
        return await self._run(self._documents_sync, None)

    async def document(self, source_id: str) -> DocumentSummary | None:
        found = await self._run(self._documents_sync, source_id)
        return found[0] if found else None

    async def chunk_count(self, source_ids: Sequence[str] | None = None) -> int:
        return await self._run(self._chunk_count_sync, source_ids)

    async def embed(self, text: str) -> list[float]:
        """Embed on the store's worker so callers share its serialization."""
        return await self._run(self._engine.embed, text)

    # ------------------------------------------------------------------

    async def _run(self, fn: Callable[..., T], *args: Any) -> T:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, partial(fn, *args))

    def _open_sync(self) -> None:
        self._db.ensure_schema()
        self._index.rebuild(self._db)
        INDEX_SIZE.set(self._index.size)

    def _ingest_sync(self, content: ContentSource, source_id: str, config: IngestConfig) -> IngestOutcome:
        summary = self._fresh_summary(source_id, content)
        return self._pipeline.run(
            content,
            source_id,
            config,
            summary,
            write=self._write,
            on_status=self._save_summary,
        )

    def _fresh_summary(self, source_id: str, content: ContentSource) -> DocumentSummary:
        """New lifecycle for ``source_id``; prior versions keep their identity fields."""
        if isinstance(content, TextContent):
            title = content.name
        elif isinstance(content, FileContent):
            title = content.name or content.path.stem
        else:
            raise TypeError(f"Unsupported content source {type(content).__name__}")
        existing = self._documents_sync(source_id)
        if not existing:
            # version 0 until the first successful write
            return DocumentSummary(id=source_id, title=title, kind=self._initial_kind(content), content_version=0)
        previous = existing[0]
        return DocumentSummary(
            id=source_id,
            title=title,
            kind=previous.kind,
            file_path=previous.file_path,
            file_size=previous.file_size,
            created_at=previous.created_at,
            chunk_count=previous.chunk_count,
            page_count=previous.page_count,
            tags=previous.tags,
            course=previous.course,
            term=previous.term,
            checksum=previous.checksum,
            content_version=previous.content_version,
            embedding_version=previous.embedding_version,
            metadata=previous.metadata,
        )

    def _initial_kind(self, content: ContentSource) -> DocumentKind:
        if isinstance(content, FileContent):
            loader = self._pipeline.loaders.for_path(content.path)
            if loader is not None:
                return loader.kind
        return DocumentKind.TEXT

    def _save_summary(self, summary: DocumentSummary) -> None:
        with self._db.transaction() as conn:
            _upsert_document(conn, summary)

    def _write(
        self,
        summary: DocumentSummary,
        document: ExtractedDocument,
        chunks: Sequence[ChunkPayload],
        vectors: Sequence[list[float]],
    ) -> None:
        written = replace(
            summary,
            checksum=sha256_bytes(document.text.encode("utf-8")),
            chunk_count=len(chunks),
            page_count=document.page_count,
            content_version=summary.content_version + 1,
        )
        previous_ids = [row["id"] for row in self._db.query("SELECT id FROM chunks WHERE source_id = ?", [summary.id])]
        with self._db.transaction() as conn:
            _upsert_document(conn, written)
            conn.execute("UPDATE documents SET text = ? WHERE id = ?", [document.text, summary.id])
            conn.execute("DELETE FROM chunks WHERE source_id = ?", [summary.id])
            conn.executemany(
                """
                INSERT INTO chunks (id, source_id, ordinal, page, start_char, end_char, section_title, text, token_count)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        chunk.id,
                        chunk.source_id,
                        chunk.ordinal,
                        chunk.page,
                        chunk.start_char,
                        chunk.end_char,
                        chunk.section_title,
                        chunk.text,
                        chunk.token_count,
                    )
                    for chunk in chunks
                ],
            )
            conn.executemany(
                "INSERT INTO embeddings (chunk_id, dim, vector) VALUES (?, ?, ?)",
                [(chunk.id, len(vector), to_blob(vector)) for chunk, vector in zip(chunks, vectors)],
            )
        summary.checksum = written.checksum
        summary.chunk_count = written.chunk_count
        summary.page_count = written.page_count
        summary.content_version = written.content_version
        self._index.remove(previous_ids)
        self._index.upsert([chunk.id for chunk in chunks], vectors)
        INDEX_SIZE.set(self._index.size)

    def _search_fused_sync(
        self,
        query: str,
        source_filter: str | None,
        limit: int,
        expand: int,
        bm25_weight: float,
    ) -> list[RetrievedResult]:
        rows = self._candidates(source_filter)
        if not rows:
            return []
        lexical = bm25_scores(query, [(row["id"], row["text"]) for row in rows])
        lexical_norm = normalize_scores(lexical)
        cosine = self._index.scores(self._engine.embed(query), lexical.keys())
        fused = {
            row["id"]: fuse(lexical_norm[row["id"]], cosine.get(row["id"], 0.0), bm25_weight) for row in rows
        }
        top = sorted(rows, key=lambda row: (-fused[row["id"]], row["id"]))[:limit]
        texts = self._document_texts(row["source_id"] for row in top)
        return [
            self._result(
                row,
                texts,
                expand,
                bm25=lexical[row["id"]],
                cosine=cosine.get(row["id"], 0.0),
                score=fused[row["id"]],
            )
            for row in top
        ]

    def _search_contextual_sync(
        self,
        query: str,
        source_filter: str | None,
        limit: int,
        expand: int,
    ) -> list[RetrievedResult]:
        rows = self._candidates(source_filter)
        lexical = bm25_scores(query, [(row["id"], row["text"]) for row in rows])
        lexical_norm = normalize_scores(lexical)
        matches = [row for row in rows if lexical[row["id"]] > 0.0]
        top = sorted(matches, key=lambda row: (-lexical[row["id"]], row["id"]))[:limit]
        texts = self._document_texts(row["source_id"] for row in top)
        return [
            self._result(row, texts, expand, bm25=lexical[row["id"]], cosine=None, score=lexical_norm[row["id"]])
            for row in top
        ]

    def _candidates(self, source_filter: str | None) -> list[sqlite3.Row]:
        if source_filter:
            return self._db.query(f"SELECT {_CHUNK_COLUMNS} FROM chunks WHERE source_id = ?", [source_filter])
        return self._db.query(f"SELECT {_CHUNK_COLUMNS} FROM chunks", [])

    def _document_texts(self, source_ids: Any) -> dict[str, str]:
        ids = sorted(set(source_ids))
        if not ids:
            return {}
        placeholders = ",".join("?" for _ in ids)
        rows = self._db.query(f"SELECT id, text FROM documents WHERE id IN ({placeholders})", ids)
        return {row["id"]: row["text"] or "" for row in rows}

    def _result(
        self,
        row: sqlite3.Row,
        texts: dict[str, str],
        expand: int,
        *,
        bm25: float,
        cosine: float | None,
        score: float,
    ) -> RetrievedResult:
        document_text = texts.get(row["source_id"], "")
        if document_text:
            text = widen(document_text, row["start_char"], row["end_char"], expand)
        else:
            text = row["text"]
        return RetrievedResult(
            source_id=row["source_id"],
            start_page=row["page"],
            excerpt=excerpt(row["text"], self.excerpt_chars),
            text=text,
            bm25_score=bm25,
            cosine_score=cosine,
            fused_score=score,
        )

    def _documents_sync(self, source_id: str | None) -> list[DocumentSummary]:
        if source_id is None:
            rows = self._db.query("SELECT * FROM documents ORDER BY created_at, id", [])
        else:
            rows = self._db.query("SELECT * FROM documents WHERE id = ?", [source_id])
        return [_row_to_summary(row) for row in rows]

    def _chunk_count_sync(self, source_ids: Sequence[str] | None) -> int:
        if source_ids:
            placeholders = ",".join("?" for _ in source_ids)
            row = self._db.execute(
                f"SELECT COUNT(*) AS count FROM chunks WHERE source_id IN ({placeholders})",
                list(source_ids),
            ).fetchone()
        else:
            row = self._db.execute("SELECT COUNT(*) AS count FROM chunks").fetchone()
        return int(row["count"]) if row else 0


def _upsert_document(conn: sqlite3.Connection, summary: DocumentSummary) -> None:
    conn.execute(
        _UPSERT_DOCUMENT,
        [
            summary.id,
            summary.title,
            summary.kind.value,
            str(summary.file_path) if summary.file_path else None,
            summary.file_size,
            int(summary.created_at.timestamp() * 1000),
            now_ms(),
            summary.chunk_count,
            summary.page_count,
            summary.state.status.value,
            summary.state.reason,
            orjson.dumps(summary.tags).decode("utf-8"),
            summary.course,
            summary.term,
            summary.checksum,
            summary.content_version,
            summary.embedding_version,
            orjson.dumps(summary.metadata).decode("utf-8"),
        ],
    )


def _row_to_summary(row: sqlite3.Row) -> DocumentSummary:
    return DocumentSummary(
        id=row["id"],
        title=row["title"],
        kind=DocumentKind(row["kind"]),
        file_path=Path(row["file_path"]) if row["file_path"] else None,
        file_size=row["file_size"],
        created_at=from_ms(row["created_at"]),
        updated_at=from_ms(row["updated_at"]),
        chunk_count=row["chunk_count"],
        page_count=row["page_count"],
        state=DocumentState(DocumentStatus(row["status"]), row["status_reason"]),
        tags=orjson.loads(row["tags_json"]),
        course=row["course"],
        term=row["term"],
        checksum=row["checksum"],
        content_version=row["content_version"],
        embedding_version=row["embedding_version"],
        metadata=orjson.loads(row["meta_json"]),
    )


__all__ = ["SQLiteIndexStore"]
