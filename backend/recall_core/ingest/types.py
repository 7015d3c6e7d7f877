"""Common ingestion data structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, NamedTuple, Union

from recall_core.models.document import DocumentKind


@dataclass(frozen=True, slots=True)
class TextContent:
    """Already-canonical text handed over for indexing."""

    text: str
    name: str


@dataclass(frozen=True, slots=True)
class FileContent:
    """File on disk whose text the pipeline must extract."""

    path: Path
    name: str | None = None


ContentSource = Union[TextContent, FileContent]


@dataclass(frozen=True, slots=True)
class SourceRecord:
    """Content-addressed document: the id is derived from its bytes."""

    source_id: str
    canonical_text: str


@dataclass(frozen=True, slots=True)
class IngestConfig:
    """Chunking and indexing knobs passed to the index store."""

    max_tokens_per_chunk: int = 1000
    overlap_tokens: int = 150
    min_tokens_per_chunk: int = 80
    prefix_titles: bool = True


class IngestOutcome(NamedTuple):
    """``units`` is pages, characters or items depending on the entry point."""

    units: int
    chunks: int


@dataclass(slots=True)
class ExtractedPage:
    number: int | None
    text: str


@dataclass(slots=True)
class ExtractedDocument:
    """Text pulled out of a content source prior to chunking."""

    title: str
    kind: DocumentKind
    pages: list[ExtractedPage]
    size_bytes: int
    file_path: Path | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def text(self) -> str:
        return "\n\n".join(page.text for page in self.pages)

    @property
    def page_count(self) -> int | None:
        if self.kind is DocumentKind.PDF:
            return len(self.pages)
        return None


@dataclass(slots=True)
class ChunkPayload:
    """Chunk produced by the chunker prior to persistence."""

    id: str
    source_id: str
    ordinal: int
    page: int | None
    start_char: int
    end_char: int
    section_title: str
    text: str
    token_count: int


__all__ = [
    "TextContent",
    "FileContent",
    "ContentSource",
    "SourceRecord",
    "IngestConfig",
    "IngestOutcome",
    "ExtractedPage",
    "ExtractedDocument",
    "ChunkPayload",
]
