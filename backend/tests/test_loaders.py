"""Tests for file and mailbox loaders."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import fitz
import pytest

from recall_core.ingest.loaders import LoaderRegistry, load_mailbox
from recall_core.models.document import DocumentKind

EML = b"""From: Teaching Assistant <ta@school.edu>
To: Alex <alex@school.edu>, bo@school.edu
Cc: prof@university.edu
Subject: CS 101 Midterm Details
Date: Tue, 30 Sep 2025 14:00:00 +0200
Message-ID: <health-2@school.edu>
Content-Type: text/plain; charset="utf-8"

Midterm is on Oct 20, covers chapters 1-5.
"""


def test_markdown_front_matter_sets_title(tmp_path: Path) -> None:
    path = tmp_path / "notes.md"
    path.write_text("---\ntitle: Week 5\ncourse: CS 101\n---\n# Heading\n\nSome *body* text.", encoding="utf-8")
    document = LoaderRegistry().load(path)
    assert document.kind is DocumentKind.MARKDOWN
    assert document.title == "Week 5"
    assert document.metadata["course"] == "CS 101"
    assert document.text == "Heading\n\nSome *body* text."


def test_text_loader(tmp_path: Path) -> None:
    path = tmp_path / "todo.txt"
    path.write_text("call the dentist", encoding="utf-8")
    document = LoaderRegistry().load(path)
    assert document.title == "todo"
    assert document.pages[0].number is None
    assert document.size_bytes == len("call the dentist")


def test_pdf_loader_numbers_pages(tmp_path: Path) -> None:
    path = tmp_path / "slides.pdf"
    with fitz.open() as pdf:
        for text in ("First page about photosynthesis", "Second page about chlorophyll"):
            page = pdf.new_page()
            page.insert_text((72, 72), text)
        pdf.save(str(path))
    document = LoaderRegistry().load(path)
    assert document.kind is DocumentKind.PDF
    assert [page.number for page in document.pages] == [1, 2]
    assert "chlorophyll" in document.pages[1].text


def test_unknown_suffix_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        LoaderRegistry().load(tmp_path / "deck.pptx")


def test_eml_message(tmp_path: Path) -> None:
    path = tmp_path / "midterm.eml"
    path.write_bytes(EML)
    [message] = load_mailbox(path)
    assert message.subject == "CS 101 Midterm Details"
    assert message.to == ("alex@school.edu", "bo@school.edu")
    assert message.cc == ("prof@university.edu",)
    assert message.date == datetime(2025, 9, 30, 12, 0, tzinfo=timezone.utc)
    assert message.body == "Midterm is on Oct 20, covers chapters 1-5."


def test_mbox_archive(tmp_path: Path) -> None:
    path = tmp_path / "inbox.mbox"
    second = EML.replace(b"CS 101 Midterm Details", b"Lab opportunity").replace(b"Date: Tue", b"X-Date: Tue")
    path.write_bytes(
        b"From ta@school.edu Tue Sep 30 12:00:00 2025\n" + EML + b"\n"
        b"From prof@university.edu Tue Sep 30 13:00:00 2025\n" + second + b"\n"
    )
    messages = load_mailbox(path)
    assert [message.subject for message in messages] == ["CS 101 Midterm Details", "Lab opportunity"]
    assert messages[1].date == datetime.fromtimestamp(0, tz=timezone.utc)
