"""Text extraction for supported file formats and mail archives."""

from __future__ import annotations

import email.utils
import mailbox
from datetime import datetime, timezone
from email import message_from_binary_file, policy
from email.message import Message
from pathlib import Path

import fitz
import yaml
from markdown_it import MarkdownIt

from recall_core.ingest.formatter import EmailMessage
from recall_core.ingest.types import ExtractedDocument, ExtractedPage
from recall_core.models.document import DocumentKind

_MD = MarkdownIt()


class BaseLoader:
    """Common loader interface."""

    suffixes: tuple[str, ...] = ()
    kind: DocumentKind = DocumentKind.TEXT

    def can_load(self, path: Path) -> bool:
        return path.suffix.lower() in self.suffixes

    def load(self, path: Path) -> ExtractedDocument:  # pragma: no cover - interface
        raise NotImplementedError


class TextLoader(BaseLoader):
    suffixes = (".txt", ".text", ".log")

    def load(self, path: Path) -> ExtractedDocument:
        raw = path.read_bytes()
        return ExtractedDocument(
            title=path.stem,
            kind=self.kind,
            pages=[ExtractedPage(number=None, text=raw.decode("utf-8", errors="ignore"))],
            size_bytes=len(raw),
            file_path=path,
        )


class MarkdownLoader(BaseLoader):
    suffixes = (".md", ".markdown", ".mdx")
    kind = DocumentKind.MARKDOWN

    def load(self, path: Path) -> ExtractedDocument:
        raw = path.read_bytes()
        front_matter, body = _split_front_matter(raw.decode("utf-8", errors="ignore"))
        metadata = {str(key): str(value) for key, value in (front_matter or {}).items()}
        title = metadata.get("title") or path.stem
        return ExtractedDocument(
            title=title,
            kind=self.kind,
            pages=[ExtractedPage(number=None, text=_markdown_to_text(body))],
            size_bytes=len(raw),
            file_path=path,
            metadata=metadata,
        )


class PDFLoader(BaseLoader):
    suffixes = (".pdf",)
    kind = DocumentKind.PDF

    def load(self, path: Path) -> ExtractedDocument:
        raw = path.read_bytes()
        with fitz.open(stream=raw, filetype="pdf") as doc:
            title = (doc.metadata or {}).get("title") or path.stem
            pages = [
                ExtractedPage(number=index + 1, text=page.get_text("text", sort=True))
                for index, page in enumerate(doc)
            ]
        return ExtractedDocument(
            title=title,
            kind=self.kind,
            pages=pages,
            size_bytes=len(raw),
            file_path=path,
        )


class LoaderRegistry:
    """Registry that selects an appropriate loader for a path."""

    def __init__(self) -> None:
        self._loaders: list[BaseLoader] = [
            MarkdownLoader(),
            TextLoader(),
            PDFLoader(),
        ]

    def register(self, loader: BaseLoader) -> None:
        self._loaders.append(loader)

    def for_path(self, path: Path) -> BaseLoader | None:
        for loader in self._loaders:
            if loader.can_load(path):
                return loader
        return None

    def load(self, path: Path) -> ExtractedDocument:
        loader = self.for_path(path)
        if loader is None:
            raise ValueError(f"No loader registered for suffix {path.suffix}")
        return loader.load(path)


def load_mailbox(path: Path) -> list[EmailMessage]:
    """Read a single ``.eml`` file or every message of an ``.mbox`` archive."""
    if path.suffix.lower() == ".mbox":
        box = mailbox.mbox(path, factory=lambda fh: message_from_binary_file(fh, policy=policy.default))
        try:
            return [_to_email(message) for message in box]
        finally:
            box.close()
    with path.open("rb") as handle:
        return [_to_email(message_from_binary_file(handle, policy=policy.default))]


def _to_email(message: Message) -> EmailMessage:
    return EmailMessage(
        subject=str(message.get("subject", "")),
        sender=str(message.get("from", "")),
        to=_addresses(message.get_all("to", [])),
        cc=_addresses(message.get_all("cc", [])),
        date=_parse_date(message.get("date")),
        body=_plain_body(message).strip(),
        message_id=message.get("message-id"),
    )


def _addresses(headers: list[str]) -> tuple[str, ...]:
    return tuple(addr for _, addr in email.utils.getaddresses([str(value) for value in headers]) if addr)


def _parse_date(value: str | None) -> datetime:
    if value:
        try:
            parsed = email.utils.parsedate_to_datetime(str(value))
        except (TypeError, ValueError):
            parsed = None
        if parsed is not None:
            return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return datetime.fromtimestamp(0, tz=timezone.utc)


def _plain_body(message: Message) -> str:
    parts: list[str] = []
    for part in message.walk():
        if part.get_content_type() != "text/plain" or part.is_multipart():
            continue
        payload = part.get_payload(decode=True)
        if payload:
            parts.append(payload.decode(part.get_content_charset() or "utf-8", errors="ignore"))
    return "\n".join(parts)


def _split_front_matter(text: str) -> tuple[dict[str, object] | None, str]:
    if text.startswith("---"):
        parts = text.split("---", 2)
        if len(parts) >= 3:
            try:
                front_matter = yaml.safe_load(parts[1]) or {}
            except yaml.YAMLError:
                return None, text
            if isinstance(front_matter, dict):
                return front_matter, parts[2]
    return None, text


def _markdown_to_text(text: str) -> str:
    blocks = [token.content.strip() for token in _MD.parse(text) if token.content.strip()]
    return "\n\n".join(blocks) if blocks else text


__all__ = [
    "BaseLoader",
    "TextLoader",
    "MarkdownLoader",
    "PDFLoader",
    "LoaderRegistry",
    "load_mailbox",
]
