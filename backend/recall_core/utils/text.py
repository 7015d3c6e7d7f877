"""Text processing helpers."""

from __future__ import annotations

import re

WHITESPACE_RE = re.compile(r"\s+")
ELLIPSIS = "…"


def normalize(text: str) -> str:
    """Collapse whitespace and strip."""
    return WHITESPACE_RE.sub(" ", text).strip()


def excerpt(text: str, limit: int) -> str:
    """Single-line preview of at most ``limit`` characters, cut at a word boundary."""
    flat = normalize(text)
    if len(flat) <= limit:
        return flat
    cut = flat[: limit - 1]
    if " " in cut:
        cut = cut.rsplit(" ", 1)[0]
    return cut + ELLIPSIS


def widen(document: str, start: int, end: int, expand: int) -> str:
    """Slice ``document[start:end]`` grown by ``expand`` characters on each side."""
    lo = max(0, start - max(0, expand))
    hi = min(len(document), end + max(0, expand))
    return document[lo:hi]
