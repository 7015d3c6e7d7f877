"""Paragraph-first chunking bounded by whitespace-token budgets."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Iterator, Sequence

from recall_core.ingest.types import ChunkPayload, ExtractedDocument, IngestConfig

_PARAGRAPH_BREAK_RE = re.compile(r"\n\s*\n")
_SENTENCE_RE = re.compile(r"[^.!?\n]+[.!?]?")
_CHARS_PER_TOKEN = 4


@dataclass(slots=True)
class Span:
    start: int
    end: int
    tokens: int


def chunk_spans(
    text: str,
    max_tokens: int = 1000,
    min_tokens: int = 80,
    overlap_tokens: int = 150,
) -> list[Span]:
    """Group paragraph/sentence spans of ``text`` into chunk-sized windows.

    A window closes once adding the next span would exceed ``max_tokens``,
    unless it is still below ``min_tokens``. The next window reopens with
    trailing spans worth at most ``overlap_tokens``.
    """
    if not text.strip():
        return []

    pieces: list[Span] = []
    for paragraph in _paragraphs(text):
        pieces.extend(_shrink(text, paragraph, max_tokens))

    chunks: list[Span] = []
    window: list[Span] = []
    window_tokens = 0
    for piece in pieces:
        fits = window_tokens + piece.tokens <= max_tokens
        if window and not fits and window_tokens >= min_tokens:
            chunks.append(_merge(text, window))
            window = _overlap_tail(window, overlap_tokens)
            window_tokens = sum(span.tokens for span in window)
            while window and window_tokens + piece.tokens > max_tokens:
                window_tokens -= window.pop(0).tokens
        window.append(piece)
        window_tokens += piece.tokens
    if window:
        chunks.append(_merge(text, window))
    return chunks


def chunk_document(source_id: str, document: ExtractedDocument, config: IngestConfig) -> list[ChunkPayload]:
    """Chunk every page and report offsets into ``document.text``."""
    payloads: list[ChunkPayload] = []
    offset = 0
    for page in document.pages:
        for span in chunk_spans(
            page.text,
            max_tokens=config.max_tokens_per_chunk,
            min_tokens=config.min_tokens_per_chunk,
            overlap_tokens=config.overlap_tokens,
        ):
            payloads.append(
                ChunkPayload(
                    id=f"{source_id}#{len(payloads)}",
                    source_id=source_id,
                    ordinal=len(payloads),
                    page=page.number,
                    start_char=offset + span.start,
                    end_char=offset + span.end,
                    section_title=document.title,
                    text=page.text[span.start : span.end],
                    token_count=span.tokens,
                )
            )
        offset += len(page.text) + 2
    return payloads


def count_tokens(text: str) -> int:
    return max(1, len(text.split()))


def _paragraphs(text: str) -> Iterator[Span]:
    cursor = 0
    for match in _PARAGRAPH_BREAK_RE.finditer(text):
        span = _trimmed(text, cursor, match.start())
        if span:
            yield span
        cursor = match.end()
    span = _trimmed(text, cursor, len(text))
    if span:
        yield span


def _trimmed(text: str, start: int, end: int) -> Span | None:
    while start < end and text[start].isspace():
        start += 1
    while end > start and text[end - 1].isspace():
        end -= 1
    if start >= end:
        return None
    return Span(start, end, count_tokens(text[start:end]))


def _shrink(text: str, span: Span, max_tokens: int) -> list[Span]:
    if span.tokens <= max_tokens:
        return [span]
    sentences: list[Span] = []
    for match in _SENTENCE_RE.finditer(text, span.start, span.end):
        sentence = _trimmed(text, match.start(), match.end())
        if sentence is not None:
            sentences.append(sentence)
    if len(sentences) > 1:
        shrunk: list[Span] = []
        for sentence in sentences:
            shrunk.extend(_shrink(text, sentence, max_tokens))
        return shrunk
    return _split_evenly(text, span, max_tokens)


def _split_evenly(text: str, span: Span, max_tokens: int) -> list[Span]:
    length = span.end - span.start
    pieces = max(2, math.ceil(length / (max_tokens * _CHARS_PER_TOKEN)))
    step = max(1, math.ceil(length / pieces))
    parts: list[Span] = []
    for start in range(span.start, span.end, step):
        end = min(span.end, start + step)
        parts.extend(_shrink(text, Span(start, end, count_tokens(text[start:end])), max_tokens))
    return parts


def _merge(text: str, spans: Sequence[Span]) -> Span:
    start, end = spans[0].start, spans[-1].end
    return Span(start, end, count_tokens(text[start:end]))


def _overlap_tail(spans: Sequence[Span], overlap_tokens: int) -> list[Span]:
    if overlap_tokens <= 0:
        return []
    kept: list[Span] = []
    budget = 0
    for span in reversed(spans):
        if budget + span.tokens > overlap_tokens:
            break
        kept.append(span)
        budget += span.tokens
    kept.reverse()
    return kept


__all__ = ["Span", "chunk_spans", "chunk_document", "count_tokens"]
