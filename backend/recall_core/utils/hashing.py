"""Content-addressed identifiers."""

from __future__ import annotations

import hashlib
from pathlib import Path

TEXT_SOURCE_PREFIX = "text:"


def sha256_bytes(data: bytes) -> str:
    """Return hex digest for bytes input."""
    return hashlib.sha256(data).hexdigest()


def sha256_file(path: Path) -> str:
    """Return hex digest for file contents."""
    h = hashlib.sha256()
    with path.open("rb") as fh:
        for chunk in iter(lambda: fh.read(8192), b""):
            h.update(chunk)
    return h.hexdigest()


def text_source_id(text: str) -> str:
    """Source id for free text: prefix plus the digest of its UTF-8 bytes."""
    return TEXT_SOURCE_PREFIX + sha256_bytes(text.encode("utf-8"))


def file_source_id(path: Path) -> str:
    """Source id for a file: the bare digest of its bytes."""
    return sha256_file(path)


__all__ = ["sha256_bytes", "sha256_file", "text_source_id", "file_source_id", "TEXT_SOURCE_PREFIX"]
